"""OpenStack cloud client: Keystone v2.0, Nova and Neutron over the REST API."""

import logging

import httpx

from stackdock.provisioning.errors import AuthError, CloudError
from stackdock.provisioning.types import AddressType, FloatingIp, IpAddress

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT_TYPE = "public"
REQUEST_TIMEOUT = 60


class OpenStackClient:
    """Production CloudClient backed by httpx.

    Authentication and endpoint discovery are cached on the instance, so
    authenticate() and the init_*_client() calls can be repeated freely.
    """

    def __init__(self, transport=None, timeout=REQUEST_TIMEOUT):
        self._transport = transport
        self._timeout = timeout
        self.token = None
        self.service_catalog = []
        self.compute_url = None
        self.network_url = None

    # ── HTTP helpers ──────────────────────────────────────────────

    async def _request(self, method, url, json=None, params=None, auth=True):
        """Send a request and return the parsed JSON body ({} when empty)."""
        headers = {"Accept": "application/json"}
        if auth:
            headers["X-Auth-Token"] = self.token
        logger.debug(f"{method} {url}")
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self._timeout) as client:
                resp = await client.request(method, url, json=json, params=params, headers=headers)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise CloudError(f"{method} {url} failed with HTTP {status}: {e.response.text.strip()}", status) from e
        except httpx.HTTPError as e:
            raise CloudError(f"{method} {url} failed: {e}") from e
        if not resp.content:
            return {}
        try:
            return resp.json()
        except ValueError as e:
            raise CloudError(f"{method} {url} returned invalid JSON: {e}", resp.status_code) from e

    def _compute(self, path):
        if self.compute_url is None:
            raise CloudError("Compute client is not initialized")
        return f"{self.compute_url}{path}"

    def _network(self, path):
        if self.network_url is None:
            raise CloudError("Network client is not initialized")
        return f"{self.network_url}/v2.0{path}"

    def _endpoint(self, spec, service_type):
        """Pick the catalog endpoint for service_type honouring region and endpoint type."""
        url_key = f"{spec.endpoint_type or DEFAULT_ENDPOINT_TYPE}URL"
        for service in self.service_catalog:
            if service.get("type") != service_type:
                continue
            for endpoint in service.get("endpoints", []):
                if spec.region and endpoint.get("region") != spec.region:
                    continue
                if endpoint.get(url_key):
                    return endpoint[url_key].rstrip("/")
        region = f" in region {spec.region}" if spec.region else ""
        raise CloudError(f"No {service_type} endpoint ({url_key}){region} found in the service catalog")

    # ── Authentication ────────────────────────────────────────────

    async def authenticate(self, spec):
        if self.token is not None:
            return
        logger.debug(f"Authenticating against {spec.auth_url} as {spec.username}")
        auth = {"passwordCredentials": {"username": spec.username, "password": spec.password}}
        if spec.tenant_id:
            auth["tenantId"] = spec.tenant_id
        else:
            auth["tenantName"] = spec.tenant_name
        try:
            body = await self._request("POST", f"{spec.auth_url.rstrip('/')}/tokens", json={"auth": auth}, auth=False)
        except CloudError as e:
            raise AuthError(f"Authentication failed: {e}", e.status_code) from e
        access = body.get("access", {})
        self.token = access.get("token", {}).get("id")
        if not self.token:
            raise AuthError("Authentication failed: no token in the identity response")
        self.service_catalog = access.get("serviceCatalog", [])

    async def init_compute_client(self, spec):
        if self.compute_url is None:
            self.compute_url = self._endpoint(spec, "compute")

    async def init_network_client(self, spec):
        if self.network_url is None:
            self.network_url = self._endpoint(spec, "network")

    # ── Listings ──────────────────────────────────────────────────

    async def list_flavors(self, spec):
        body = await self._request("GET", self._compute("/flavors"))
        return [{"name": f["name"], "id": f["id"]} for f in body.get("flavors", [])]

    async def list_images(self, spec):
        body = await self._request("GET", self._compute("/images"))
        return [{"name": i["name"], "id": i["id"]} for i in body.get("images", [])]

    async def list_networks(self, spec):
        body = await self._request("GET", self._network("/networks"))
        return [{"name": n["name"], "id": n["id"]} for n in body.get("networks", [])]

    async def list_floating_ip_pools(self, spec):
        body = await self._request("GET", self._network("/networks"), params={"router:external": "true"})
        return [{"name": n["name"], "id": n["id"]} for n in body.get("networks", [])]

    # ── Instances ─────────────────────────────────────────────────

    async def create_instance(self, spec, state):
        server = {
            "name": state.machine_name,
            "flavorRef": state.flavor_id,
            "imageRef": state.image_id,
            "key_name": state.key_pair_name,
        }
        if state.network_id:
            server["networks"] = [{"uuid": state.network_id}]
        if spec.security_groups:
            server["security_groups"] = [{"name": g} for g in spec.security_groups]
        body = await self._request("POST", self._compute("/servers"), json={"server": server})
        instance_id = body.get("server", {}).get("id")
        if not instance_id:
            raise CloudError("No instance id returned by the create request")
        return instance_id

    async def _get_server(self, state):
        body = await self._request("GET", self._compute(f"/servers/{state.instance_id}"))
        return body.get("server", {})

    async def get_instance_state(self, spec, state):
        try:
            server = await self._get_server(state)
        except CloudError as e:
            if e.status_code == 404:
                return ""
            raise
        return server.get("status", "")

    async def get_instance_ip_addresses(self, spec, state):
        server = await self._get_server(state)
        addresses = []
        for network, entries in server.get("addresses", {}).items():
            for entry in entries:
                raw_type = entry.get("OS-EXT-IPS:type", AddressType.FIXED.value)
                addresses.append(
                    IpAddress(
                        network=network,
                        address=entry.get("addr", ""),
                        address_type=AddressType(raw_type) if raw_type in ("fixed", "floating") else AddressType.FIXED,
                        version=entry.get("version", 4),
                        mac=entry.get("OS-EXT-IPS-MAC:mac_addr", ""),
                    )
                )
        return addresses

    async def _server_action(self, state, action):
        await self._request("POST", self._compute(f"/servers/{state.instance_id}/action"), json=action)

    async def start_instance(self, spec, state):
        await self._server_action(state, {"os-start": None})

    async def stop_instance(self, spec, state):
        await self._server_action(state, {"os-stop": None})

    async def restart_instance(self, spec, state):
        await self._server_action(state, {"reboot": {"type": "SOFT"}})

    async def delete_instance(self, spec, state):
        await self._request("DELETE", self._compute(f"/servers/{state.instance_id}"))

    # ── Key pairs ─────────────────────────────────────────────────

    async def create_key_pair(self, spec, name, public_key):
        await self._request(
            "POST",
            self._compute("/os-keypairs"),
            json={"keypair": {"name": name, "public_key": public_key.strip()}},
        )

    async def delete_key_pair(self, spec, name):
        await self._request("DELETE", self._compute(f"/os-keypairs/{name}"))

    # ── Floating IPs ──────────────────────────────────────────────

    async def get_instance_port_id(self, spec, state):
        params = {"device_id": state.instance_id}
        if state.network_id:
            params["network_id"] = state.network_id
        body = await self._request("GET", self._network("/ports"), params=params)
        ports = body.get("ports", [])
        if not ports:
            raise CloudError(f"No network port found for instance {state.instance_id}")
        return ports[0]["id"]

    async def get_floating_ips(self, spec, state):
        body = await self._request(
            "GET", self._network("/floatingips"), params={"floating_network_id": state.floating_ip_pool_id}
        )
        return [
            FloatingIp(
                id=f["id"],
                ip=f.get("floating_ip_address") or "",
                network_id=f.get("floating_network_id") or "",
                port_id=f.get("port_id") or "",
                pool=spec.floating_ip_pool,
            )
            for f in body.get("floatingips", [])
        ]

    async def assign_floating_ip(self, spec, state, floating_ip, port_id):
        if floating_ip.id:
            await self._request(
                "PUT",
                self._network(f"/floatingips/{floating_ip.id}"),
                json={"floatingip": {"port_id": port_id}},
            )
            floating_ip.port_id = port_id
            return

        body = await self._request(
            "POST",
            self._network("/floatingips"),
            json={"floatingip": {"floating_network_id": state.floating_ip_pool_id, "port_id": port_id}},
        )
        created = body.get("floatingip", {})
        floating_ip.id = created.get("id", "")
        floating_ip.ip = created.get("floating_ip_address", "")
        floating_ip.network_id = state.floating_ip_pool_id
        floating_ip.port_id = port_id
        floating_ip.pool = spec.floating_ip_pool
