import click


@click.group()
def main() -> None:
    """Honeytrap - decoy IoT devices with a live attack feed."""


@main.command()
@click.option("--host", default=None, help="Bind host (default: from HONEY_HOST or 0.0.0.0).")
@click.option("--port", default=None, type=int, help="Bind port (default: from HONEY_PORT or 5000).")
@click.option("--reload", is_flag=True, default=False, help="Enable auto-reload for development.")
def serve(host: str | None, port: int | None, reload: bool) -> None:
    """Start the sensor (decoy endpoints + dashboard API)."""
    import uvicorn

    from honeytrap.sensor.settings import HoneySettings

    settings = HoneySettings()

    uvicorn.run(
        "honeytrap.sensor.app:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        log_level="warning",  # uvicorn's own logging is intercepted by loguru
        proxy_headers=True,
        forwarded_allow_ips="*",
    )


@main.command()
@click.option("--url", "base_url", default="http://localhost:5000", help="Sensor base URL.")
@click.option(
    "--window",
    default=50,
    type=click.IntRange(50, 200),
    help="Number of recent attacks kept in view.",
)
@click.option(
    "--poll-interval",
    default=3.0,
    type=click.FloatRange(min=0),
    help="Seconds between latest-attack polls (0 disables polling).",
)
def watch(base_url: str, window: int, poll_interval: float) -> None:
    """Follow a sensor's attack feed and print each new attack once."""
    import asyncio

    from honeytrap.observer.watcher import EventWatcher
    from honeytrap.sensor.log import setup_logging
    from honeytrap.sensor.settings import HoneySettings

    settings = HoneySettings()
    setup_logging(settings.log_level)

    watcher = EventWatcher(base_url, window=window, poll_interval=poll_interval)
    try:
        asyncio.run(watcher.run())
    except KeyboardInterrupt:
        click.echo(f"Stopped. {len(watcher.reconciler)} attacks in view.")


if __name__ == "__main__":
    main()
