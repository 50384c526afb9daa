from pathlib import Path
from typing import Optional

import click

from idbroker.cli.utils import configure_logging, output_error, output_result
from idbroker.sdk.auth.storage import SqliteStateStore
from idbroker.sdk.core.config import build_state_store, load_broker_config


@click.group(name="state")
def state() -> None:
    """Manage persisted workflow state."""


@state.command(name="cleanup")
@click.option("--config", type=click.Path(path_type=Path), help="Broker config file")
@click.option("--json-output", is_flag=True, help="Output in JSON format")
@click.option("--debug", is_flag=True, help="Show detailed debug information")
def cleanup(config: Optional[Path], json_output: bool, debug: bool) -> None:
    """Delete suspended workflows that expired before being resumed."""
    configure_logging(debug)

    try:
        store = build_state_store(load_broker_config(config))
        try:
            removed = store.cleanup_expired()
        finally:
            if isinstance(store, SqliteStateStore):
                store.close()
    except Exception as e:
        output_error(e, json_output, debug)
        return

    output_result(
        {"removed": removed}, json_output, f"Removed {removed} expired workflow states"
    )
