"""Main CLI application."""

import typer

from mailgate.cli.commands import config, network, serve

app = typer.Typer(
    name="mailgate",
    help="mailgate - Gmail MCP transport",
    no_args_is_help=True,
)

serve.register(app)
config.register(app)
network.register(app)


if __name__ == "__main__":
    app()
