"""SSH helpers: local key generation, readiness polling and post-boot setup."""

import asyncio
import logging
import os

from stackdock.provisioning.shell import run_shell_cmd
from stackdock.provisioning.wait import INTERVAL, MAX_ATTEMPTS, wait_until

logger = logging.getLogger(__name__)

AUTHORIZED_KEYS_DIR = "~/.docker/authorized-keys.d"
DOCKER_INSTALL_CMD = "curl -sSL https://get.docker.com | /bin/sh"


async def generate_ssh_key(path):
    """Generate an RSA key pair at path (and path + '.pub') unless one exists."""
    if os.path.exists(path):
        logger.debug(f"SSH key {path} already exists, reusing it.")
        return
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    rc, _, stderr = await run_shell_cmd(["ssh-keygen", "-t", "rsa", "-b", "2048", "-N", "", "-q", "-f", path])
    if rc != 0:
        raise RuntimeError(f"Failed to generate SSH key {path}: {stderr.strip()}")


async def wait_for_ssh(host, port, max_attempts=MAX_ATTEMPTS, interval=INTERVAL, connect_timeout=5, sleep=asyncio.sleep):
    """Poll until the SSH port accepts TCP connections.

    Refused or timed-out connections count as "not yet" and are retried.
    """

    async def poll():
        try:
            _, writer = await asyncio.wait_for(asyncio.open_connection(host, port), timeout=connect_timeout)
        except (OSError, asyncio.TimeoutError):
            return False
        writer.close()
        await writer.wait_closed()
        return True

    return await wait_until(
        poll,
        bool,
        f"SSH server on {host}:{port}",
        max_attempts=max_attempts,
        interval=interval,
        sleep=sleep,
    )


async def add_public_key_to_authorized_hosts(run_cmd, public_key, authorized_keys_dir=AUTHORIZED_KEYS_DIR):
    """Drop public_key into authorized_keys_dir on the machine."""
    key = public_key.strip().replace('"', "")
    rc, _, stderr = await run_cmd(f'mkdir -p {authorized_keys_dir} && echo "{key}" > {authorized_keys_dir}/stackdock.pub')
    if rc != 0:
        raise RuntimeError(f"Failed to install public key: {stderr.strip()}")


async def install_docker(run_cmd, public_key):
    """Install Docker on the machine.

    Failures are logged as warnings and never raised.

    Returns:
        True if the install command succeeded, False otherwise.
    """
    try:
        logger.debug("Adding key to authorized-keys.d...")
        await add_public_key_to_authorized_hosts(run_cmd, public_key)
        logger.info("Installing Docker on the machine...")
        rc, _, stderr = await run_cmd(DOCKER_INSTALL_CMD)
        if rc != 0:
            raise RuntimeError(f"exit code {rc}: {stderr.strip()}")
    except Exception as e:
        logger.warning(f"Docker installation failed: {e}")
        logger.warning("The machine may not be ready to run docker containers")
        return False
    return True
