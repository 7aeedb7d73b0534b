"""Driver registry: the host looks drivers up by name.

Drivers register themselves when their module is imported; importing
stackdock.provisioning imports every bundled driver, so the table is
complete at process start.
"""

from dataclasses import dataclass
from typing import Any, Callable


@dataclass
class Flag:
    """One create-time option published by a driver."""

    name: str
    help: str
    env_var: str | None = None
    default: Any = ""
    kind: type = str


@dataclass
class RegisteredDriver:
    name: str
    factory: Callable[..., Any]
    create_flags: Callable[[], list[Flag]]


DRIVERS: dict[str, RegisteredDriver] = {}


def register_driver(name, factory, create_flags):
    """Register a driver factory under name. Re-registering a name replaces it."""
    DRIVERS[name] = RegisteredDriver(name=name, factory=factory, create_flags=create_flags)


def get_driver(name) -> RegisteredDriver:
    try:
        return DRIVERS[name]
    except KeyError:
        available = ", ".join(sorted(DRIVERS)) or "none"
        raise KeyError(f"Unknown driver '{name}'. Available drivers: {available}") from None


def list_drivers():
    return sorted(DRIVERS)
