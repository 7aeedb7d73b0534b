"""Shared data types for the machine driver."""

from dataclasses import asdict, dataclass, fields
from enum import Enum

DEFAULT_SSH_USER = "root"
DEFAULT_SSH_PORT = 22


class InstanceState(str, Enum):
    """Normalized machine state, independent of the provider's status strings."""

    STARTING = "starting"
    RUNNING = "running"
    PAUSED = "paused"
    SAVED = "saved"
    STOPPED = "stopped"
    ERROR = "error"
    UNKNOWN = "unknown"


_STATE_BY_STATUS = {
    "ACTIVE": InstanceState.RUNNING,
    "PAUSED": InstanceState.PAUSED,
    "SUSPENDED": InstanceState.SAVED,
    "SHUTOFF": InstanceState.STOPPED,
    "BUILDING": InstanceState.STARTING,
    "BUILD": InstanceState.STARTING,
    "ERROR": InstanceState.ERROR,
}


def normalize_state(status) -> InstanceState:
    """Map a raw provider status onto InstanceState. Unrecognized values map to UNKNOWN."""
    return _STATE_BY_STATUS.get(status or "", InstanceState.UNKNOWN)


class AddressType(str, Enum):
    FIXED = "fixed"
    FLOATING = "floating"


@dataclass
class IpAddress:
    """One address attached to an instance, as reported by the compute API."""

    network: str
    address: str
    address_type: AddressType
    version: int = 4
    mac: str = ""


@dataclass
class FloatingIp:
    """A floating IP. An empty port_id means the address is not bound."""

    id: str = ""
    ip: str = ""
    network_id: str = ""
    port_id: str = ""
    pool: str = ""


@dataclass(frozen=True)
class MachineSpec:
    """User-declared description of the machine. Never mutated by the driver."""

    auth_url: str = ""
    username: str = ""
    password: str = ""
    tenant_name: str = ""
    tenant_id: str = ""
    region: str = ""
    endpoint_type: str = ""
    flavor_name: str = ""
    flavor_id: str = ""
    image_name: str = ""
    image_id: str = ""
    network_name: str = ""
    network_id: str = ""
    security_groups: tuple[str, ...] = ()
    floating_ip_pool: str = ""
    machine_name: str = ""
    ssh_user: str = DEFAULT_SSH_USER
    ssh_port: int = DEFAULT_SSH_PORT
    install_docker: bool = True

    @property
    def address_type(self) -> AddressType:
        """Address type the machine is reached on: floating when a pool is configured."""
        return AddressType.FLOATING if self.floating_ip_pool else AddressType.FIXED

    def to_dict(self) -> dict:
        d = asdict(self)
        d["security_groups"] = list(self.security_groups)
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "MachineSpec":
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in d.items() if k in known}
        if "security_groups" in values:
            values["security_groups"] = tuple(values["security_groups"] or ())
        return cls(**values)


@dataclass
class ProvisioningState:
    """Mutable scratch state of one machine: resolved ids and provisioning outputs."""

    machine_name: str = ""
    key_pair_name: str = ""
    flavor_id: str = ""
    image_id: str = ""
    network_id: str = ""
    floating_ip_pool_id: str = ""
    instance_id: str = ""
    ip: str = ""

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict) -> "ProvisioningState":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in d.items() if k in known})
