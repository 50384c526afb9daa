import click

from idbroker.cli.sources import sources
from idbroker.cli.state import state


@click.group()
@click.version_option(package_name="idbroker")
def cli() -> None:
    """idbroker - authentication source tooling for the identity broker."""


cli.add_command(sources)
cli.add_command(state)


if __name__ == "__main__":
    cli()
