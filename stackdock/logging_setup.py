"""CLI logging setup: plain %(message)s output on stdout."""

import logging
import sys

from stackdock.redact import SecretRedactingFilter


def setup_cli_logging(debug=False):
    """Configure the root logger for CLI commands.

    INFO and above print like print() would; with debug=True, DEBUG records
    are shown too, prefixed with the logger name.
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if debug else logging.INFO)
    root.handlers.clear()
    handler = logging.StreamHandler(sys.stdout)
    fmt = "[%(name)s] %(message)s" if debug else "%(message)s"
    handler.setFormatter(logging.Formatter(fmt))
    # On the handler so records from every logger pass through it
    handler.addFilter(SecretRedactingFilter())
    root.addHandler(handler)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if debug else logging.WARNING)
