"""OpenStack machine driver: creation pipeline and lifecycle operations."""

import asyncio
import logging
import os
import uuid
from enum import Enum

from stackdock.provisioning.client import CloudClient
from stackdock.provisioning.errors import ConfigError, StackdockError, UnsupportedOperationError
from stackdock.provisioning.floating_ip import assign_floating_ip
from stackdock.provisioning.openstack import OpenStackClient
from stackdock.provisioning.registry import Flag, register_driver
from stackdock.provisioning.resolve import resolve_ids
from stackdock.provisioning.ssh import generate_ssh_key, install_docker, wait_for_ssh
from stackdock.provisioning.ssh_transport import build_ssh_command, make_run_cmd
from stackdock.provisioning.types import (
    DEFAULT_SSH_PORT,
    DEFAULT_SSH_USER,
    InstanceState,
    MachineSpec,
    ProvisioningState,
    normalize_state,
)
from stackdock.provisioning.validate import check_config
from stackdock.provisioning.wait import wait_for_instance_state, wait_for_ip_address

logger = logging.getLogger(__name__)

DRIVER_NAME = "openstack"
MACHINE_NAME_PREFIX = "docker-host-"
DOCKER_PORT = 2376


class CreatePhase(str, Enum):
    """Progress of one create() call, in order."""

    UNCONFIGURED = "unconfigured"
    VALIDATED = "validated"
    RESOLVED = "resolved"
    KEYPAIR_READY = "keypair-ready"
    INSTANCE_REQUESTED = "instance-requested"
    INSTANCE_ACTIVE = "instance-active"
    FLOATING_IP_ASSIGNED = "floating-ip-assigned"
    IP_KNOWN = "ip-known"
    SSH_READY = "ssh-ready"
    READY = "ready"


def get_create_flags():
    """Create-time options of the OpenStack driver."""
    return [
        Flag("openstack-auth-url", "OpenStack authentication URL", env_var="OS_AUTH_URL"),
        Flag("openstack-username", "OpenStack username", env_var="OS_USERNAME"),
        Flag("openstack-password", "OpenStack password", env_var="OS_PASSWORD"),
        Flag("openstack-tenant-name", "OpenStack tenant name", env_var="OS_TENANT_NAME"),
        Flag("openstack-tenant-id", "OpenStack tenant id", env_var="OS_TENANT_ID"),
        Flag("openstack-region", "OpenStack region name", env_var="OS_REGION_NAME"),
        Flag("openstack-endpoint-type", "OpenStack endpoint type (public, admin or internal)", env_var="OS_ENDPOINT_TYPE"),
        Flag("openstack-flavor-id", "OpenStack flavor id to use for the instance"),
        Flag("openstack-flavor-name", "OpenStack flavor name to use for the instance"),
        Flag("openstack-image-id", "OpenStack image id to use for the instance"),
        Flag("openstack-image-name", "OpenStack image name to use for the instance"),
        Flag("openstack-net-id", "OpenStack network id the machine will be connected on"),
        Flag("openstack-net-name", "OpenStack network name the machine will be connected on"),
        Flag("openstack-sec-groups", "OpenStack comma separated security groups for the machine"),
        Flag("openstack-floatingip-pool", "OpenStack floating IP pool to get an IP from to assign to the instance"),
        Flag("openstack-ssh-user", "OpenStack SSH user", default=DEFAULT_SSH_USER),
        Flag("openstack-ssh-port", "OpenStack SSH port", default=DEFAULT_SSH_PORT, kind=int),
        # Parsed with parse_bool
        Flag("openstack-docker-install", "Set if docker has to be installed on the machine", default="true"),
    ]


def parse_bool(value):
    """Parse a boolean option the way strconv.ParseBool-style flags are written."""
    if isinstance(value, bool):
        return value
    text = str(value).strip()
    if text in ("1", "t", "T", "true", "TRUE", "True"):
        return True
    if text in ("0", "f", "F", "false", "FALSE", "False"):
        return False
    raise ConfigError(f"Invalid boolean value {value!r} for --openstack-docker-install", ("install_docker",))


class OpenStackDriver:
    """Provision and manage a single OpenStack instance.

    The user-declared MachineSpec is immutable; everything the driver learns
    while working (resolved ids, instance id, IP) lives in ProvisioningState.
    The cloud client is injected, OpenStackClient being the default.
    """

    driver_name = DRIVER_NAME

    def __init__(self, store_root, client: CloudClient | None = None, sleep=asyncio.sleep):
        self.store_root = os.path.expanduser(str(store_root))
        self.client = client or OpenStackClient()
        self.spec = MachineSpec()
        self.state = ProvisioningState()
        self.phase = CreatePhase.UNCONFIGURED
        self._sleep = sleep

    # ── Configuration ─────────────────────────────────────────────

    def get_create_flags(self):
        return get_create_flags()

    def set_config_from_flags(self, options, machine_name=""):
        """Build the MachineSpec from a {flag name: value} mapping."""
        sec_groups = options.get("openstack-sec-groups") or ""
        self.spec = MachineSpec(
            auth_url=options.get("openstack-auth-url") or "",
            username=options.get("openstack-username") or "",
            password=options.get("openstack-password") or "",
            tenant_name=options.get("openstack-tenant-name") or "",
            tenant_id=options.get("openstack-tenant-id") or "",
            region=options.get("openstack-region") or "",
            endpoint_type=options.get("openstack-endpoint-type") or "",
            flavor_id=options.get("openstack-flavor-id") or "",
            flavor_name=options.get("openstack-flavor-name") or "",
            image_id=options.get("openstack-image-id") or "",
            image_name=options.get("openstack-image-name") or "",
            network_id=options.get("openstack-net-id") or "",
            network_name=options.get("openstack-net-name") or "",
            security_groups=tuple(g.strip() for g in sec_groups.split(",") if g.strip()),
            floating_ip_pool=options.get("openstack-floatingip-pool") or "",
            machine_name=machine_name,
            ssh_user=options.get("openstack-ssh-user") or DEFAULT_SSH_USER,
            ssh_port=int(options.get("openstack-ssh-port") or DEFAULT_SSH_PORT),
            install_docker=parse_bool(options.get("openstack-docker-install", "true")),
        )

    # ── Paths and persistence ─────────────────────────────────────

    @property
    def store_path(self):
        return os.path.join(self.store_root, self.state.machine_name or self.spec.machine_name)

    @property
    def ssh_key_path(self):
        return os.path.join(self.store_path, "id_rsa")

    @property
    def public_ssh_key_path(self):
        return self.ssh_key_path + ".pub"

    def to_dict(self):
        return {"driver": self.driver_name, "spec": self.spec.to_dict(), "state": self.state.to_dict()}

    @classmethod
    def from_dict(cls, data, store_root, client=None, sleep=asyncio.sleep):
        driver = cls(store_root, client=client, sleep=sleep)
        driver.spec = MachineSpec.from_dict(data.get("spec", {}))
        driver.state = ProvisioningState.from_dict(data.get("state", {}))
        return driver

    # ── Create ────────────────────────────────────────────────────

    def _advance(self, phase):
        self.phase = phase
        logger.debug(f"[{self.state.machine_name or '-'}] {phase.value}")

    async def create(self):
        """Run the full creation pipeline.

        Any failure aborts the remaining steps. Nothing already created is
        rolled back: remove() cleans up once an instance id is known.
        """
        spec = self.spec
        check_config(spec)
        self._advance(CreatePhase.VALIDATED)

        if not self.state.machine_name:
            self.state.machine_name = spec.machine_name or f"{MACHINE_NAME_PREFIX}{uuid.uuid4().hex}"
        self.state.key_pair_name = self.state.machine_name
        await resolve_ids(self.client, spec, self.state)
        self._advance(CreatePhase.RESOLVED)

        await self._create_ssh_key()
        self._advance(CreatePhase.KEYPAIR_READY)

        await self._create_machine()
        self._advance(CreatePhase.INSTANCE_REQUESTED)

        await self._wait_for_instance_active()
        self._advance(CreatePhase.INSTANCE_ACTIVE)

        if spec.floating_ip_pool:
            await assign_floating_ip(self.client, spec, self.state)
            self._advance(CreatePhase.FLOATING_IP_ASSIGNED)

        ip = await self.get_ip()
        logger.info(f"IP address found: {ip}")
        self._advance(CreatePhase.IP_KNOWN)

        await self._wait_for_ssh_server()
        self._advance(CreatePhase.SSH_READY)

        if spec.install_docker:
            await self._install_docker()
        self._advance(CreatePhase.READY)
        logger.info(f"Machine {self.state.machine_name} is ready.")

    async def _init_compute(self):
        await self.client.authenticate(self.spec)
        await self.client.init_compute_client(self.spec)

    async def _create_ssh_key(self):
        logger.info(f"Creating key pair {self.state.key_pair_name}...")
        await generate_ssh_key(self.ssh_key_path)
        with open(self.public_ssh_key_path) as f:
            public_key = f.read()

        await self._init_compute()
        await self.client.create_key_pair(self.spec, self.state.key_pair_name, public_key)

    async def _create_machine(self):
        logger.info(f"Creating OpenStack instance {self.state.machine_name} (flavor={self.state.flavor_id} image={self.state.image_id})...")
        await self._init_compute()
        self.state.instance_id = await self.client.create_instance(self.spec, self.state)
        logger.info(f"Instance created (id={self.state.instance_id}).")

    async def _wait_for_instance_active(self):
        logger.info("Waiting for the OpenStack instance to be ACTIVE...")
        await wait_for_instance_state(self.client, self.spec, self.state, InstanceState.RUNNING, sleep=self._sleep)

    async def _wait_for_ssh_server(self):
        ip = await self.get_ip()
        logger.info(f"Waiting for the SSH server on {ip}:{self.spec.ssh_port}...")
        await wait_for_ssh(ip, self.spec.ssh_port, sleep=self._sleep)

    async def _install_docker(self):
        with open(self.public_ssh_key_path) as f:
            public_key = f.read()
        run_cmd = make_run_cmd(self.state.ip, self.spec.ssh_user, self.spec.ssh_port, self.ssh_key_path)
        return await install_docker(run_cmd, public_key)

    # ── Queries ───────────────────────────────────────────────────

    async def get_ip(self):
        """Return the machine's address, looking it up (and caching it) if unknown."""
        if self.state.ip:
            return self.state.ip

        logger.debug(f"Looking for the IP address of {self.state.instance_id}...")
        await self._init_compute()
        self.state.ip = await wait_for_ip_address(self.client, self.spec, self.state, sleep=self._sleep)
        return self.state.ip

    async def get_url(self):
        ip = await self.get_ip()
        if not ip:
            return ""
        return f"tcp://{ip}:{DOCKER_PORT}"

    async def get_state(self):
        await self._init_compute()
        status = await self.client.get_instance_state(self.spec, self.state)
        logger.debug(f"State for OpenStack instance {self.state.instance_id}: {status!r}")
        return normalize_state(status)

    async def get_ssh_command(self, *args):
        """argv for an ssh session (or remote command) on the machine."""
        ip = await self.get_ip()
        return build_ssh_command(ip, self.spec.ssh_user, self.spec.ssh_port, self.ssh_key_path, *args)

    # ── Lifecycle ─────────────────────────────────────────────────

    async def start(self):
        logger.info(f"Starting OpenStack instance {self.state.instance_id}...")
        await self._init_compute()
        await self.client.start_instance(self.spec, self.state)
        await self._wait_for_instance_to_start()

    async def stop(self):
        logger.info(f"Stopping OpenStack instance {self.state.instance_id}...")
        await self._init_compute()
        await self.client.stop_instance(self.spec, self.state)
        logger.info("Waiting for the OpenStack instance to stop...")
        await wait_for_instance_state(self.client, self.spec, self.state, InstanceState.STOPPED, sleep=self._sleep)

    async def restart(self):
        logger.info(f"Restarting OpenStack instance {self.state.instance_id}...")
        await self._init_compute()
        await self.client.restart_instance(self.spec, self.state)
        await self._wait_for_instance_to_start()

    async def kill(self):
        await self.stop()

    async def remove(self):
        """Delete the instance, then its key pair. The floating IP is kept."""
        if not self.state.instance_id:
            raise StackdockError(f"Machine {self.state.machine_name} has no instance id, nothing to remove")
        logger.info(f"Deleting OpenStack instance {self.state.instance_id}...")
        await self._init_compute()
        await self.client.delete_instance(self.spec, self.state)
        logger.info(f"Deleting key pair {self.state.key_pair_name}...")
        await self.client.delete_key_pair(self.spec, self.state.key_pair_name)

    async def upgrade(self):
        raise UnsupportedOperationError("Upgrade is currently not available for the OpenStack driver")

    async def _wait_for_instance_to_start(self):
        await self._wait_for_instance_active()
        await self._wait_for_ssh_server()


register_driver(DRIVER_NAME, OpenStackDriver, get_create_flags)
