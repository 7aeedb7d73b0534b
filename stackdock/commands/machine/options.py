"""Create-option collection: CLI flags, environment variables and YAML config."""

import os

import yaml


def load_config_file(path, driver_name):
    """Load a YAML machine config and key it by full flag name.

    Keys may be given with or without the driver prefix, with dashes or
    underscores: ``flavor-name``, ``flavor_name`` and ``openstack-flavor-name``
    are equivalent. List values are joined with commas.
    """
    with open(os.path.expanduser(path)) as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Config file {path} must contain a mapping, got {type(raw).__name__}")

    prefix = f"{driver_name}-"
    config = {}
    for key, value in raw.items():
        name = str(key).replace("_", "-")
        if not name.startswith(prefix):
            name = prefix + name
        if isinstance(value, list):
            value = ",".join(str(v) for v in value)
        config[name] = value
    return config


def collect_options(args, flags, config=None):
    """Resolve every flag to a value: CLI > env var > config file > default."""
    config = config or {}
    options = {}
    for flag in flags:
        value = getattr(args, flag.name.replace("-", "_"), None)
        if value is None and flag.env_var:
            value = os.environ.get(flag.env_var) or None
        if value is None:
            value = config.get(flag.name)
        if value is None:
            value = flag.default
        options[flag.name] = value
    return options
