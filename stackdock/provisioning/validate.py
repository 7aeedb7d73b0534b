"""Configuration checks run before any call to the cloud."""

from stackdock.provisioning.errors import ConfigError
from stackdock.provisioning.types import MachineSpec

ENDPOINT_TYPES = ("public", "admin", "internal")

_MANDATORY_ENV_OR_OPTION = "{} must be specified either using the environment variable {} or the CLI option {}"
_MANDATORY_OPTION = "{} must be specified using the CLI option {}"
_EXCLUSIVE_OPTIONS = "Either {} or {} must be specified, not both"
_MANDATORY_TENANT = (
    "Tenant id or name must be provided either using one of the environment variables "
    "OS_TENANT_ID and OS_TENANT_NAME or one of the CLI options "
    "--openstack-tenant-id and --openstack-tenant-name"
)
_WRONG_ENDPOINT_TYPE = "Endpoint type must be 'public', 'admin' or 'internal'"


def _require_one_of(name_value, id_value, label, option, fields):
    if not name_value and not id_value:
        raise ConfigError(
            _MANDATORY_OPTION.format(f"{label} name or {label} id", f"--{option}-name or --{option}-id"),
            fields,
        )
    if name_value and id_value:
        raise ConfigError(_EXCLUSIVE_OPTIONS.format(f"{label} name", f"{label} id"), fields)


def check_config(spec: MachineSpec):
    """Validate a MachineSpec, raising ConfigError on the first problem found.

    Checks run in a fixed order and stop at the first failure, so the error
    always names a single field or pair of fields.
    """
    if not spec.auth_url:
        raise ConfigError(
            _MANDATORY_ENV_OR_OPTION.format("Authentication URL", "OS_AUTH_URL", "--openstack-auth-url"),
            ("auth_url",),
        )
    if not spec.username:
        raise ConfigError(
            _MANDATORY_ENV_OR_OPTION.format("Username", "OS_USERNAME", "--openstack-username"),
            ("username",),
        )
    if not spec.password:
        raise ConfigError(
            _MANDATORY_ENV_OR_OPTION.format("Password", "OS_PASSWORD", "--openstack-password"),
            ("password",),
        )
    if not spec.tenant_name and not spec.tenant_id:
        raise ConfigError(_MANDATORY_TENANT, ("tenant_name", "tenant_id"))

    _require_one_of(spec.flavor_name, spec.flavor_id, "Flavor", "openstack-flavor", ("flavor_name", "flavor_id"))
    _require_one_of(spec.image_name, spec.image_id, "Image", "openstack-image", ("image_name", "image_id"))

    if spec.network_name and spec.network_id:
        raise ConfigError(_EXCLUSIVE_OPTIONS.format("Network name", "Network id"), ("network_name", "network_id"))
    if spec.endpoint_type and spec.endpoint_type not in ENDPOINT_TYPES:
        raise ConfigError(_WRONG_ENDPOINT_TYPE, ("endpoint_type",))
