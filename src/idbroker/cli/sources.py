from pathlib import Path
from typing import Any, Dict, List, Optional

import click

from idbroker.cli.utils import configure_logging, output_error, output_result
from idbroker.sdk.auth import AuthSourceError, get_by_id
from idbroker.sdk.auth.registry import parse_source_entry
from idbroker.sdk.core.config import load_broker_config, load_sources_config


def _load_sources(config: Optional[Path]) -> Dict[str, Any]:
    broker_config = load_broker_config(config)
    return load_sources_config(broker_config.authsources)


def check_sources(sources_config: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Construct every configured source and report the outcome per identifier."""
    results = []
    for auth_id in sorted(sources_config):
        entry: Dict[str, Any] = {"auth_id": auth_id}
        try:
            source = get_by_id(auth_id, sources_config)
            entry["type"] = parse_source_entry(auth_id, sources_config[auth_id])[0]
            entry["class"] = type(source).__name__
            entry["status"] = "ok"
        except AuthSourceError as e:
            entry["status"] = "error"
            entry["message"] = str(e)
        results.append(entry)
    return results


def format_source_results(results: List[Dict[str, Any]]) -> str:
    if not results:
        return "No authentication sources configured"

    failed = [r for r in results if r["status"] != "ok"]
    output = [f"Found {len(results)} authentication sources ({len(failed)} invalid):", ""]
    for result in results:
        if result["status"] == "ok":
            output.append(f"  ✓ {result['auth_id']} ({result['type']})")
        else:
            output.append(f"  ✗ {result['auth_id']}")
            output.append(f"    Error: {result['message']}")
    return "\n".join(output)


@click.group(name="sources")
def sources() -> None:
    """Inspect configured authentication sources."""


@sources.command(name="list")
@click.option("--config", type=click.Path(path_type=Path), help="Broker config file")
@click.option("--json-output", is_flag=True, help="Output in JSON format")
@click.option("--debug", is_flag=True, help="Show detailed debug information")
def list_sources(config: Optional[Path], json_output: bool, debug: bool) -> None:
    """List authentication sources and check that each one can be constructed.

    Examples:
        idbroker sources list
        idbroker sources list --config /etc/idbroker/config.yaml --json-output
    """
    configure_logging(debug)

    try:
        results = check_sources(_load_sources(config))
    except Exception as e:
        output_error(e, json_output, debug)
        return

    output_result(results, json_output, format_source_results(results))

    if any(r["status"] != "ok" for r in results):
        raise click.exceptions.Exit(1)


@sources.command(name="show")
@click.argument("auth_id")
@click.option("--config", type=click.Path(path_type=Path), help="Broker config file")
@click.option("--json-output", is_flag=True, help="Output in JSON format")
@click.option("--debug", is_flag=True, help="Show detailed debug information")
def show_source(auth_id: str, config: Optional[Path], json_output: bool, debug: bool) -> None:
    """Show the type and options of one authentication source."""
    configure_logging(debug)

    try:
        sources_config = _load_sources(config)
        if auth_id not in sources_config:
            raise LookupError(f"No authentication source configured as '{auth_id}'")
        type_name, options = parse_source_entry(auth_id, sources_config[auth_id])
        get_by_id(auth_id, sources_config)
    except Exception as e:
        output_error(e, json_output, debug)
        return

    result = {"auth_id": auth_id, "type": type_name, "options": options}
    lines = [f"Source: {auth_id}", f"Type: {type_name}"]
    lines.extend(f"  {key}: {options[key]}" for key in sorted(options))
    output_result(result, json_output, lines)
