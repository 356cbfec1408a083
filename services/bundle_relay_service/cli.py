"""Process entrypoint: `bundle-relay BACKEND_URLS [PORT]`."""

from __future__ import annotations

import asyncio

import typer
import uvicorn

from services.bundle_relay_service.app.main import create_app, create_metrics_app
from services.bundle_relay_service.app.metrics import RelayMetrics
from services.bundle_relay_service.config import Settings
from services.bundle_relay_service.logging_utils import (
    configure_service_logging,
    create_service_logger,
)

DEFAULT_PORT = 18545

app = typer.Typer(
    help="Relay authenticated eth_sendBundle calls to a fixed set of backends.",
    add_completion=False,
)
logger = create_service_logger("bundle_relay.cli")


def valid_port(port: int) -> bool:
    return 0 <= port <= 65535


def parse_backend_urls(value: str) -> list[str]:
    return [url.strip() for url in value.split(",") if url.strip()]


async def serve(config: Settings) -> None:
    """Run the relay and metrics listeners until either one stops."""
    metrics = RelayMetrics()
    relay_app = create_app(config, metrics=metrics)
    metrics_app = create_metrics_app(relay_app.state.di_container)

    log_level = config.LOG_LEVEL.lower()
    relay_server = uvicorn.Server(
        uvicorn.Config(
            relay_app,
            host=config.HTTP_HOST,
            port=config.HTTP_PORT,
            log_level=log_level,
            access_log=False,
        )
    )
    metrics_server = uvicorn.Server(
        uvicorn.Config(
            metrics_app,
            host=config.HTTP_HOST,
            port=config.METRICS_PORT,
            log_level=log_level,
            access_log=False,
            lifespan="off",
        )
    )
    await asyncio.gather(relay_server.serve(), metrics_server.serve())


@app.command()
def main(
    backend_urls: str = typer.Argument(
        ..., metavar="BACKEND_URLS", help="Comma-separated backend JSON-RPC URLs"
    ),
    port: int = typer.Argument(DEFAULT_PORT, metavar="[PORT]", help="Relay listener port"),
    metrics_port: int = typer.Option(9090, "--metrics-port", help="Metrics listener port"),
    host: str = typer.Option("0.0.0.0", "--host", help="Interface to bind both listeners to"),
) -> None:
    """Start the relay."""
    backends = parse_backend_urls(backend_urls)
    if not backends:
        raise typer.BadParameter("no valid backend urls provided", param_hint="BACKEND_URLS")
    if not valid_port(port):
        raise typer.BadParameter(f"invalid port specified for PORT: {port}", param_hint="PORT")
    if not valid_port(metrics_port):
        raise typer.BadParameter(
            f"invalid port specified for --metrics-port: {metrics_port}",
            param_hint="--metrics-port",
        )

    config = Settings(
        BACKEND_URLS=backends,
        HTTP_PORT=port,
        METRICS_PORT=metrics_port,
        HTTP_HOST=host,
    )
    configure_service_logging(
        config.SERVICE_NAME,
        environment=config.ENVIRONMENT.value,
        log_level=config.LOG_LEVEL,
    )
    logger.info(f"Starting relay for {len(backends)} backend endpoints")
    asyncio.run(serve(config))


if __name__ == "__main__":
    app()
