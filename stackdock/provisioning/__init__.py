"""Machine provisioning: driver, name resolution, convergence waits, cloud client."""

from stackdock.provisioning.client import CloudClient
from stackdock.provisioning.driver import CreatePhase, OpenStackDriver
from stackdock.provisioning.errors import (
    AuthError,
    CloudError,
    ConfigError,
    NoIpFoundError,
    ResourceNotFoundError,
    StackdockError,
    UnsupportedOperationError,
    WaitTimeoutError,
)
from stackdock.provisioning.openstack import OpenStackClient
from stackdock.provisioning.registry import get_driver, list_drivers, register_driver
from stackdock.provisioning.types import (
    AddressType,
    FloatingIp,
    InstanceState,
    IpAddress,
    MachineSpec,
    ProvisioningState,
    normalize_state,
)
from stackdock.provisioning.wait import wait_until

__all__ = [
    "AddressType",
    "AuthError",
    "CloudClient",
    "CloudError",
    "ConfigError",
    "CreatePhase",
    "FloatingIp",
    "InstanceState",
    "IpAddress",
    "MachineSpec",
    "NoIpFoundError",
    "OpenStackClient",
    "OpenStackDriver",
    "ProvisioningState",
    "ResourceNotFoundError",
    "StackdockError",
    "UnsupportedOperationError",
    "WaitTimeoutError",
    "get_driver",
    "list_drivers",
    "normalize_state",
    "register_driver",
    "wait_until",
]
