"""Cloud capability interface consumed by the machine driver.

The driver never talks HTTP itself: it is handed an object implementing
CloudClient at construction time. OpenStackClient is the production
implementation; tests inject a scripted double.
"""

from typing import Protocol

from stackdock.provisioning.types import FloatingIp, IpAddress, MachineSpec, ProvisioningState


class CloudClient(Protocol):
    async def authenticate(self, spec: MachineSpec) -> None: ...

    async def init_compute_client(self, spec: MachineSpec) -> None: ...

    async def init_network_client(self, spec: MachineSpec) -> None: ...

    async def list_flavors(self, spec: MachineSpec) -> list[dict]: ...

    async def list_images(self, spec: MachineSpec) -> list[dict]: ...

    async def list_networks(self, spec: MachineSpec) -> list[dict]: ...

    async def list_floating_ip_pools(self, spec: MachineSpec) -> list[dict]: ...

    async def create_instance(self, spec: MachineSpec, state: ProvisioningState) -> str: ...

    async def get_instance_state(self, spec: MachineSpec, state: ProvisioningState) -> str: ...

    async def get_instance_ip_addresses(self, spec: MachineSpec, state: ProvisioningState) -> list[IpAddress]: ...

    async def start_instance(self, spec: MachineSpec, state: ProvisioningState) -> None: ...

    async def stop_instance(self, spec: MachineSpec, state: ProvisioningState) -> None: ...

    async def restart_instance(self, spec: MachineSpec, state: ProvisioningState) -> None: ...

    async def delete_instance(self, spec: MachineSpec, state: ProvisioningState) -> None: ...

    async def create_key_pair(self, spec: MachineSpec, name: str, public_key: str) -> None: ...

    async def delete_key_pair(self, spec: MachineSpec, name: str) -> None: ...

    async def get_instance_port_id(self, spec: MachineSpec, state: ProvisioningState) -> str: ...

    async def get_floating_ips(self, spec: MachineSpec, state: ProvisioningState) -> list[FloatingIp]: ...

    async def assign_floating_ip(
        self, spec: MachineSpec, state: ProvisioningState, floating_ip: FloatingIp, port_id: str
    ) -> None:
        """Bind floating_ip to port_id, allocating it first when floating_ip.id is empty.

        Fills in floating_ip.id and floating_ip.ip for a fresh allocation.
        """
        ...
