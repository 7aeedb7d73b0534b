"""Machine lifecycle commands: create, start, stop, restart, kill, rm, ip, url, status, ssh."""

import argparse
import asyncio
import logging
import sys

from stackdock.commands.machine.options import collect_options, load_config_file
from stackdock.provisioning import StackdockError, get_driver, list_drivers
from stackdock.provisioning.ssh_transport import format_command
from stackdock.provisioning.store import load_machine, remove_machine, resolve_storage_path, save_machine
from stackdock.redact import register_secret

logger = logging.getLogger(__name__)


# ── CLI handlers ───────────────────────────────────────────────────


def handle_create(args):
    """CLI handler for 'machine create'."""
    asyncio.run(_handle_create(args))


async def _handle_create(args):
    registered = get_driver(args.driver)
    flags = registered.create_flags()
    try:
        config = load_config_file(args.config, args.driver) if args.config else {}
        options = collect_options(args, flags, config)
    except (OSError, ValueError) as e:
        logger.error(f"Error: {e}")
        sys.exit(1)
    register_secret(options.get(f"{args.driver}-password"))

    driver = registered.factory(resolve_storage_path(args.storage_path))
    try:
        driver.set_config_from_flags(options, machine_name=args.name or "")
        await driver.create()
    except (StackdockError, RuntimeError) as e:
        logger.error(f"Error creating machine: {e}")
        sys.exit(1)
    finally:
        # Saved even on failure: 'machine rm' needs the instance id
        if driver.state.machine_name:
            save_machine(driver)

    logger.info(f"Machine:  {driver.state.machine_name}")
    logger.info(f"Instance: {driver.state.instance_id}")
    logger.info(f"IP:       {driver.state.ip}")
    logger.info(f"Connect:  stackdock machine ssh {driver.state.machine_name}")


def _load(args):
    try:
        return load_machine(args.name, args.storage_path)
    except (FileNotFoundError, KeyError) as e:
        logger.error(f"Error: {e.args[0] if e.args else e}")
        sys.exit(1)


async def _run_action(args, action):
    driver = _load(args)
    register_secret(driver.spec.password)
    try:
        result = await action(driver)
    except StackdockError as e:
        logger.error(f"Error: {e}")
        sys.exit(1)
    if args.action != "rm":
        save_machine(driver)
    return driver, result


def _make_handler(method):
    def handler(args):
        asyncio.run(_run_action(args, lambda driver: getattr(driver, method)()))

    return handler


def handle_rm(args):
    """CLI handler for 'machine rm'."""

    async def _rm(driver):
        if not driver.state.instance_id:
            logger.warning(f"Machine {args.name} has no instance id, removing the local record only.")
        else:
            try:
                await driver.remove()
            except StackdockError as e:
                if not args.force:
                    raise
                logger.warning(f"Cloud cleanup failed ({e}), removing the local record anyway.")
        remove_machine(args.name, args.storage_path)
        logger.info(f"Machine {args.name} removed.")

    asyncio.run(_run_action(args, _rm))


def handle_ip(args):
    _, ip = asyncio.run(_run_action(args, lambda driver: driver.get_ip()))
    print(ip)


def handle_url(args):
    _, url = asyncio.run(_run_action(args, lambda driver: driver.get_url()))
    print(url)


def handle_status(args):
    _, state = asyncio.run(_run_action(args, lambda driver: driver.get_state()))
    print(state.value)


def handle_ssh(args):
    command = [a for a in args.command if a != "--"]
    _, argv = asyncio.run(_run_action(args, lambda driver: driver.get_ssh_command(*command)))
    print(format_command(argv))


# ── Registration ───────────────────────────────────────────────────


def _add_storage_arg(parser):
    parser.add_argument(
        "--storage-path",
        default=None,
        help="Machine store directory (fallback: STACKDOCK_STORAGE_PATH env var, default: ~/.stackdock)",
    )


def _register_create(subparsers):
    parser = subparsers.add_parser("create", help="Create a machine")
    parser.add_argument("--name", default=None, help="Machine name (default: generated)")
    parser.add_argument("--driver", default="openstack", choices=list_drivers(), help="Driver to use (default: openstack)")
    parser.add_argument("--config", default=None, help="YAML file with driver options (flags and env vars take precedence)")
    _add_storage_arg(parser)
    for driver_name in list_drivers():
        for flag in get_driver(driver_name).create_flags():
            help_text = flag.help
            if flag.env_var:
                help_text += f" (fallback: {flag.env_var} env var)"
            if flag.default not in ("", None):
                help_text += f" (default: {flag.default})"
            parser.add_argument(f"--{flag.name}", type=flag.kind, default=None, help=help_text)
    parser.set_defaults(func=handle_create)


_ACTIONS = [
    ("start", "Start a machine", _make_handler("start")),
    ("stop", "Stop a machine", _make_handler("stop")),
    ("restart", "Restart a machine", _make_handler("restart")),
    ("kill", "Kill a machine", _make_handler("kill")),
    ("upgrade", "Upgrade a machine", _make_handler("upgrade")),
    ("rm", "Remove a machine and its key pair", handle_rm),
    ("ip", "Print the IP address of a machine", handle_ip),
    ("url", "Print the docker URL of a machine", handle_url),
    ("status", "Print the state of a machine", handle_status),
]


def register_machine_command(subparsers):
    """Register the 'machine' command with its action subparsers."""
    machine_parser = subparsers.add_parser("machine", help="Manage cloud machines")
    action_subparsers = machine_parser.add_subparsers(dest="action", required=True)

    _register_create(action_subparsers)

    for action, help_text, handler in _ACTIONS:
        parser = action_subparsers.add_parser(action, help=help_text)
        parser.add_argument("name", help="Machine name")
        _add_storage_arg(parser)
        if action == "rm":
            parser.add_argument(
                "--force", action="store_true", help="Remove the local record even if the cloud cleanup fails"
            )
        parser.set_defaults(func=handler)

    ssh_parser = action_subparsers.add_parser("ssh", help="Print the ssh command for a machine")
    ssh_parser.add_argument("name", help="Machine name")
    ssh_parser.add_argument("command", nargs=argparse.REMAINDER, help="Remote command to run")
    _add_storage_arg(ssh_parser)
    ssh_parser.set_defaults(func=handle_ssh)
