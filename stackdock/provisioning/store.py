"""On-disk machine store: <storage>/machines/<name>/machine.json plus its SSH key."""

import json
import logging
import os
from pathlib import Path

from stackdock.provisioning.registry import get_driver

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_PATH = "~/.stackdock"
MACHINE_FILE = "machine.json"


def resolve_storage_path(storage_path=None):
    """Return the machines directory for a storage path (flag > env > default)."""
    root = storage_path or os.environ.get("STACKDOCK_STORAGE_PATH") or DEFAULT_STORAGE_PATH
    return Path(os.path.expanduser(root)) / "machines"


def save_machine(driver):
    """Write the driver's spec and state to machine.json (owner-readable only)."""
    machine_dir = Path(driver.store_path)
    machine_dir.mkdir(parents=True, exist_ok=True)
    path = machine_dir / MACHINE_FILE
    path.write_text(json.dumps(driver.to_dict(), indent=2))
    path.chmod(0o600)
    logger.debug(f"Saved machine to {path}")
    return path


def load_machine(name, storage_path=None, client=None):
    """Rebuild the driver of a stored machine.

    Raises:
        FileNotFoundError: if no machine of that name is stored.
    """
    machines_dir = resolve_storage_path(storage_path)
    path = machines_dir / name / MACHINE_FILE
    if not path.exists():
        raise FileNotFoundError(f"Machine '{name}' not found in {machines_dir}")
    data = json.loads(path.read_text())
    registered = get_driver(data.get("driver", ""))
    return registered.factory.from_dict(data, machines_dir, client=client)


def remove_machine(name, storage_path=None):
    """Delete the stored files of a machine."""
    machine_dir = resolve_storage_path(storage_path) / name
    if not machine_dir.exists():
        return
    for child in machine_dir.iterdir():
        child.unlink()
    machine_dir.rmdir()
