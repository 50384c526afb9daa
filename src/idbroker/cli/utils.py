import json
import logging
import os
import traceback
from typing import Any, Dict, List, Union

import click

from idbroker.sdk.auth.errors import ConfigurationError


def debug_from_env() -> bool:
    """Return True when IDBROKER_DEBUG is set to "1", "true" or "yes"."""
    return os.environ.get("IDBROKER_DEBUG", "").lower() in ("1", "true", "yes")


def configure_logging(debug: bool = False) -> None:
    """Route idbroker log records to stderr.

    Args:
        debug: Log at DEBUG instead of WARNING. IDBROKER_DEBUG has the same effect.
    """
    log_level = logging.DEBUG if debug or debug_from_env() else logging.WARNING

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove any existing handlers to avoid duplicate messages
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setLevel(log_level)
    handler.setFormatter(logging.Formatter("%(levelname)s:%(name)s:%(message)s"))
    root_logger.addHandler(handler)

    logging.getLogger("idbroker").setLevel(log_level)


def describe_error(error: Exception, debug: bool = False) -> Dict[str, Any]:
    """Build the error payload shown to the operator.

    Configuration errors tied to one authentication source carry its
    identifier so the offending entry can be found in authsources.yaml.
    """
    info: Dict[str, Any] = {"error": str(error)}
    auth_id = error.auth_id if isinstance(error, ConfigurationError) else None
    if auth_id is not None:
        info["auth_id"] = auth_id

    if debug:
        info["type"] = type(error).__name__
        info["traceback"] = traceback.format_exc()
    return info


def output_result(result: Any, json_output: bool, text: Union[str, List[str]]) -> None:
    """Print ``result`` as a JSON envelope, or ``text`` line by line."""
    if json_output:
        click.echo(json.dumps({"status": "ok", "result": result}, indent=2, default=str))
        return

    for line in [text] if isinstance(text, str) else text:
        click.echo(line)


def output_error(error: Exception, json_output: bool = False, debug: bool = False) -> None:
    """Print ``error`` and abort the command."""
    info = describe_error(error, debug)

    if json_output:
        click.echo(json.dumps({"status": "error", **info}, indent=2))
    else:
        source = f" (source '{info['auth_id']}')" if "auth_id" in info else ""
        click.echo(f"Error{source}: {info['error']}", err=True)
        if "traceback" in info:
            click.echo("\nTraceback:", err=True)
            click.echo(info["traceback"], err=True)

    raise click.Abort()
