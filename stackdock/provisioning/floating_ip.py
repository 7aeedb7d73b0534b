"""Floating IP policy: reuse an unbound address from the pool, else allocate one."""

import logging

from stackdock.provisioning.types import FloatingIp

logger = logging.getLogger(__name__)


def select_floating_ip(floating_ips):
    """Return the first unbound floating IP, or a blank one to be allocated.

    Selection is made from a single listing snapshot and is not locked:
    two callers sharing a tenant may pick the same address.
    """
    for floating_ip in floating_ips:
        if not floating_ip.port_id:
            return floating_ip
    return FloatingIp()


async def assign_floating_ip(client, spec, state):
    """Bind a floating IP from the configured pool to the instance's port.

    The resulting address is cached as state.ip. Floating IPs are never
    released by this driver, so they stay available for later machines.

    Returns:
        The FloatingIp that was bound.
    """
    await client.authenticate(spec)
    await client.init_network_client(spec)

    port_id = await client.get_instance_port_id(spec, state)
    floating_ips = await client.get_floating_ips(spec, state)

    logger.debug(f"Looking for an available floating IP in pool {spec.floating_ip_pool!r} for {state.instance_id}")
    floating_ip = select_floating_ip(floating_ips)
    if floating_ip.ip:
        logger.debug(f"Available floating IP found: {floating_ip.ip}")
    else:
        logger.debug("No available floating IP found. Allocating a new one...")

    await client.assign_floating_ip(spec, state, floating_ip, port_id)
    logger.info(f"Floating IP {floating_ip.ip} assigned to the instance.")
    state.ip = floating_ip.ip
    return floating_ip
