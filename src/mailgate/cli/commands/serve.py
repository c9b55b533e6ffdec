"""Server command for running the transports."""

import asyncio
import logging
from typing import Annotated

import typer

from mailgate.config import TransportConfig
from mailgate.rpc import RPCRouter

logger = logging.getLogger(__name__)


def register(app: typer.Typer) -> None:
    """Register the serve command."""

    @app.command()
    def serve(
        mode: Annotated[
            str | None,
            typer.Option(
                "--mode",
                "-m",
                help="Transport mode: stdio, http or dual (default: MCP_SERVER_MODE)",
            ),
        ] = None,
        port: Annotated[
            int | None,
            typer.Option(
                "--port",
                "-p",
                help="Port for the network transport (default: PORT)",
            ),
        ] = None,
        core: Annotated[
            str | None,
            typer.Option(
                "--core",
                help="Dispatch core to serve, as module.path:attribute",
            ),
        ] = None,
        log_level: Annotated[
            str | None,
            typer.Option(
                "--log-level",
                help="DEBUG, INFO, WARNING or ERROR (default: MAILGATE_LOG_LEVEL)",
            ),
        ] = None,
        log_file: Annotated[
            bool,
            typer.Option(
                "--log-file/--no-log-file",
                help="Also write JSONL logs under $MAILGATE_HOME/logs",
            ),
        ] = False,
    ) -> None:
        """Start the MCP transports."""
        from mailgate.cli.runtime import build_router, load_cli_config
        from mailgate.config import ConfigError
        from mailgate.logging import configure_logging
        from mailgate.network import BindError
        from mailgate.transports import TransportShutdownError

        # Logs go to stderr; stdout belongs to the stdio transport
        configure_logging(level=log_level, use_rich=True, log_to_file=log_file)

        try:
            config = load_cli_config(mode=mode, port=port)
            router = build_router(core)
        except ConfigError as e:
            logger.error(str(e))
            raise typer.Exit(1) from None
        except (ImportError, ValueError) as e:
            logger.error(f"Cannot load dispatch core: {e}")
            raise typer.Exit(1) from None

        try:
            asyncio.run(_run_server(config, router))
        except KeyboardInterrupt:
            logger.info("Server stopped")
        except BindError as e:
            logger.error(str(e))
            raise typer.Exit(1) from None
        except (ConfigError, TransportShutdownError) as e:
            logger.error(str(e))
            raise typer.Exit(1) from None


async def _run_server(config: TransportConfig, router: RPCRouter) -> None:
    """Run the supervisor until a signal or end of input."""
    from mailgate.transports import TransportSupervisor

    logger.info(f"Starting mailgate ({config.environment}, {config.mode.value} mode)")
    supervisor = TransportSupervisor(config, router)
    await supervisor.serve()
