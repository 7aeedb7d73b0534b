"""Resolve user-facing resource names to provider ids."""

import logging

from stackdock.provisioning.errors import ResourceNotFoundError

logger = logging.getLogger(__name__)


def find_id_by_name(items, name):
    """Return the id of the first item whose name matches exactly, or ""."""
    for item in items:
        if item.get("name") == name:
            return item.get("id", "")
    return ""


async def _resolve(list_fn, spec, resource_type, name):
    resource_id = find_id_by_name(await list_fn(spec), name)
    if not resource_id:
        raise ResourceNotFoundError(resource_type, name)
    logger.debug(f"Found {resource_type} id {resource_id} using its name {name!r}")
    return resource_id


async def resolve_ids(client, spec, state):
    """Fill the resolved-id fields of state from the names in spec.

    Order is network, flavor, image, floating IP pool. A resource given by
    id is copied through untouched; a resource given by name is looked up
    and a missing match raises ResourceNotFoundError. Fields already filled
    earlier in this cycle are left alone.

    Each step makes sure the client for its plane is authenticated and
    initialized; both calls are idempotent so repeated steps cost nothing.
    """
    if not state.network_id:
        if spec.network_name:
            await client.authenticate(spec)
            await client.init_network_client(spec)
            state.network_id = await _resolve(client.list_networks, spec, "network", spec.network_name)
        else:
            state.network_id = spec.network_id

    if not state.flavor_id:
        if spec.flavor_name:
            await client.authenticate(spec)
            await client.init_compute_client(spec)
            state.flavor_id = await _resolve(client.list_flavors, spec, "flavor", spec.flavor_name)
        else:
            state.flavor_id = spec.flavor_id

    if not state.image_id:
        if spec.image_name:
            await client.authenticate(spec)
            await client.init_compute_client(spec)
            state.image_id = await _resolve(client.list_images, spec, "image", spec.image_name)
        else:
            state.image_id = spec.image_id

    if not state.floating_ip_pool_id and spec.floating_ip_pool:
        await client.authenticate(spec)
        await client.init_network_client(spec)
        state.floating_ip_pool_id = await _resolve(
            client.list_floating_ip_pools, spec, "floating IP pool", spec.floating_ip_pool
        )
