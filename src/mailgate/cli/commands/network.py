"""Network diagnostics command."""

import asyncio
from typing import Annotated

import typer

from mailgate.cli.console import console, create_table, dim, error, success, yes_no


def register(app: typer.Typer) -> None:
    """Register the network command."""

    @app.command()
    def network(
        port: Annotated[
            int | None,
            typer.Option("--port", "-p", help="Override PORT"),
        ] = None,
        bind: Annotated[
            bool,
            typer.Option(
                "--bind",
                help="Run the bind cascade and release the socket afterwards",
            ),
        ] = False,
    ) -> None:
        """Probe the host's IP stacks and show the bind plan."""
        from mailgate.cli.runtime import load_cli_config
        from mailgate.config import ConfigError
        from mailgate.network import (
            BindingPlanner,
            SocketBinder,
            StackProber,
            get_network_recommendations,
        )

        try:
            config = load_cli_config(port=port)
        except ConfigError as e:
            error(str(e))
            raise typer.Exit(1) from None

        prefs = config.network_preferences()
        stack = asyncio.run(StackProber().probe())

        table = create_table("Network Stack", [("Family", "cyan"), ("Available", "")])
        table.add_row("IPv4", yes_no(stack.ipv4))
        table.add_row("IPv6", yes_no(stack.ipv6))
        console.print(table)
        console.print(f"Preferred stack: [bold]{stack.preferred}[/bold]\n")

        candidates = BindingPlanner().plan(prefs, stack)
        plan = create_table(
            f"Bind Plan (port {prefs.port})",
            [("#", "dim"), ("Address", "cyan"), ("Family", ""), ("Strategy", "green")],
        )
        for i, candidate in enumerate(candidates, 1):
            plan.add_row(
                str(i), candidate.address, candidate.family.value, candidate.strategy
            )
        console.print(plan)

        console.print("\n[bold]Recommendations:[/bold]")
        for recommendation in get_network_recommendations(stack, prefs):
            console.print(f"  - {recommendation}")

        if not bind:
            return

        outcome = asyncio.run(SocketBinder().bind(candidates, prefs.port))
        try:
            if outcome.success:
                success(f"Bound {outcome.address}:{outcome.port} ({outcome.mode})")
            else:
                error(f"Binding failed: {outcome.error}")
                raise typer.Exit(1)
        finally:
            if outcome.sock is not None:
                outcome.sock.close()
                dim("Socket released")
