"""SSH transport: build ssh command lines and run commands on the machine."""

import logging
import shlex

from stackdock.provisioning.shell import run_shell_cmd
from stackdock.provisioning.types import DEFAULT_SSH_USER

logger = logging.getLogger(__name__)


def ssh_base_args(host, ssh_user, ssh_port, ssh_key):
    """Build base SSH arguments, ending with the user@host destination."""
    args = [
        "ssh",
        "-o", "StrictHostKeyChecking=no",
        "-o", "UserKnownHostsFile=/dev/null",
        "-o", "BatchMode=yes",
        "-o", "LogLevel=quiet",
        "-o", "ConnectTimeout=10",
    ]
    if ssh_key:
        args += ["-i", ssh_key]
    args += ["-p", str(ssh_port)]
    args.append(f"{ssh_user}@{host}" if ssh_user else host)
    return args


def wrap_privileged(args, ssh_user):
    """Run a remote command through sudo when logged in as a non-root user.

    The command words are joined and passed to ``sudo sh -c '...'`` with
    single quotes escaped, so pipes and redirections run with privileges too.
    """
    if not args or ssh_user == DEFAULT_SSH_USER:
        return list(args)
    command = " ".join(args).replace("'", "\\'")
    return ["sudo", "sh", "-c", f"'{command}'"]


def build_ssh_command(host, ssh_user, ssh_port, ssh_key, *args):
    """Full argv for ssh, optionally followed by a remote command."""
    return ssh_base_args(host, ssh_user, ssh_port, ssh_key) + wrap_privileged(args, ssh_user)


def make_run_cmd(host, ssh_user, ssh_port, ssh_key):
    """Create a run_cmd callable executing commands on the machine over SSH."""

    async def run_cmd(command, timeout=1800):
        argv = build_ssh_command(host, ssh_user, ssh_port, ssh_key, command)
        rc, stdout, stderr = await run_shell_cmd(argv, timeout=timeout)
        if rc != 0 and stderr:
            logger.debug(f"SSH error ({host}): {stderr.strip()}")
        return rc, stdout, stderr

    return run_cmd


def format_command(argv):
    """Render an argv as a copy-pasteable shell line."""
    return " ".join(shlex.quote(a) for a in argv)
