"""Configuration inspection commands."""

from typing import Annotated

import os

import click
import typer

from mailgate.cli.console import console, create_table, error, success, warning, yes_no


def register(app: typer.Typer) -> None:
    """Register the config command."""

    @app.command()
    def config(
        action: Annotated[
            str | None,
            typer.Argument(help="Action: show, validate"),
        ] = None,
        mode: Annotated[
            str | None,
            typer.Option("--mode", "-m", help="Override MCP_SERVER_MODE"),
        ] = None,
        port: Annotated[
            int | None,
            typer.Option("--port", "-p", help="Override PORT"),
        ] = None,
    ) -> None:
        """Inspect configuration resolved from the environment."""
        if action is None:
            ctx = click.get_current_context()
            click.echo(ctx.get_help())
            raise typer.Exit(0)

        from mailgate.access import build_policy
        from mailgate.cli.runtime import cli_overrides
        from mailgate.config import ConfigError, load_config, validate_environment
        from mailgate.credentials import FileCredentialStatus

        overrides = cli_overrides(mode=mode, port=port)

        if action == "show":
            try:
                config_obj = load_config(os.environ, overrides)
            except ConfigError as e:
                error(str(e))
                for message in e.errors:
                    console.print(f"  - {message}")
                raise typer.Exit(1) from None

            prefs = config_obj.network_preferences()
            policy = build_policy(config_obj)
            status = FileCredentialStatus.from_config(config_obj.credentials)

            table = create_table(
                "Transport Configuration", [("Setting", "cyan"), ("Value", "green")]
            )
            table.add_row("Environment", config_obj.environment)
            table.add_row("Mode", config_obj.mode.value)
            table.add_row(
                "Port", str(config_obj.port) if config_obj.port is not None else "-"
            )
            table.add_row("Bind address", prefs.bind_address)
            table.add_row("IPv6 enabled", yes_no(config_obj.enable_ipv6))
            table.add_row("Prefer IPv6", yes_no(prefs.prefer_ipv6))
            table.add_row("Dual-stack", yes_no(prefs.dual_stack))
            table.add_row(
                "Private network access",
                yes_no(config_obj.allow_private_network_access),
            )
            table.add_row(
                "Platform internal access",
                yes_no(config_obj.allow_platform_internal_access),
            )
            table.add_row("Origin patterns", str(len(policy.origins)))
            table.add_row(
                "Credentials",
                f"{config_obj.credentials.credentials_path} "
                f"({yes_no(status.credentials_present())})",
            )
            table.add_row(
                "OAuth keys",
                f"{config_obj.credentials.oauth_keys_path} "
                f"({yes_no(status.oauth_keys_present())})",
            )
            console.print(table)

            if config_obj.allowed_origins:
                console.print("\n[bold]Configured origins:[/bold]")
                for origin in config_obj.allowed_origins:
                    console.print(f"  {origin}")

        elif action == "validate":
            report = validate_environment(os.environ, overrides)
            for message in report.warnings:
                warning(f"Warning: {message}")
            if not report.is_valid:
                error(f"Found {len(report.errors)} configuration error(s):")
                for message in report.errors:
                    console.print(f"  - {message}")
                raise typer.Exit(1)

            try:
                config_obj = load_config(os.environ, overrides)
            except ConfigError as e:
                error(str(e))
                for message in e.errors:
                    console.print(f"  - {message}")
                raise typer.Exit(1) from None
            success(
                f"Configuration is valid ({config_obj.environment}, "
                f"{config_obj.mode.value} mode)"
            )

        else:
            error(f"Unknown action: {action}")
            console.print("Valid actions: show, validate")
            raise typer.Exit(1)
