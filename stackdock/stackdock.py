#!/usr/bin/env python3
"""Cloud machine provisioning tools: CLI entrypoint."""

import argparse

from stackdock.commands.machine import register_machine_command
from stackdock.logging_setup import setup_cli_logging


def main():
    parser = argparse.ArgumentParser(description="Cloud machine provisioning tools")
    parser.add_argument("--debug", action="store_true", help="Show debug output")
    subparsers = parser.add_subparsers(dest="command", required=True)

    register_machine_command(subparsers)

    args = parser.parse_args()
    setup_cli_logging(debug=args.debug)
    args.func(args)


if __name__ == "__main__":
    main()
