import argparse
import asyncio
import contextlib
import logging
import sys
from dataclasses import dataclass, replace

from nicegui import app as ng_app
from nicegui import ui

from robodash.common.logging_config import TRACE, attach_ui_log, configure_logging
from robodash.config import Config
from robodash.constants import CACHE_PRUNE_INTERVAL_S, DASHBOARD_TITLE, LOG_LEVEL
from robodash.pages.commands import CommandsCard
from robodash.pages.general import GeneralCard
from robodash.pages.location import LocationCard
from robodash.pages.logs import LogsCard
from robodash.resources import commands_key, logs_key, telemetry_key, vitals_key
from robodash.services.commands import CommandDispatcher
from robodash.services.polling_cache import PollingCache
from robodash.services.robot_client import RobotApiClient


@dataclass
class DashboardServices:
    """Everything the cards share: one backend client, one cache, one dispatcher."""

    cfg: Config
    client: RobotApiClient
    cache: PollingCache
    dispatcher: CommandDispatcher

    @classmethod
    def create(cls, cfg: Config, client: RobotApiClient | None = None) -> "DashboardServices":
        client = client or RobotApiClient.from_config(cfg)
        cache = PollingCache(
            client,
            default_interval_s=cfg.REFETCH_INTERVAL_S,
            keep_stale_on_error=cfg.KEEP_STALE_ON_ERROR,
        )
        return cls(cfg=cfg, client=client, cache=cache, dispatcher=CommandDispatcher(client, cfg))

    async def close(self) -> None:
        await self.cache.close()
        await self.client.aclose()


# Runtime configuration (resolved later from CLI/env)
RUNTIME_CONFIG = Config.from_env()

services: DashboardServices | None = None
prune_task: asyncio.Task | None = None


async def _prune_loop(cache: PollingCache) -> None:
    """Drop cache entries nobody has looked at for a while."""
    try:
        while True:
            await asyncio.sleep(CACHE_PRUNE_INTERVAL_S)
            cache.prune(CACHE_PRUNE_INTERVAL_S)
    except asyncio.CancelledError:
        pass


async def _app_startup() -> None:
    global services, prune_task
    if services is None:
        services = DashboardServices.create(RUNTIME_CONFIG)
    if prune_task is None or prune_task.done():
        prune_task = asyncio.create_task(_prune_loop(services.cache))
    logging.info(
        "Polling %s for robot %s every %.2fs",
        services.cfg.API_URL,
        services.cfg.ROBOT_ID,
        services.cfg.REFETCH_INTERVAL_S,
    )
    if not services.cfg.API_KEY:
        logging.warning("AIR_API_KEY is not set; backend calls will be rejected")


async def _app_shutdown() -> None:
    global services, prune_task
    if prune_task:
        prune_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await prune_task
        prune_task = None
    if services:
        await services.close()
        services = None


ng_app.on_startup(_app_startup)
ng_app.on_shutdown(_app_shutdown)


@ui.page("/")
def index() -> None:
    if services is None:
        ui.label("Dashboard is starting...").classes("italic")
        return
    cfg = services.cfg
    cache = services.cache

    with ui.column().classes("w-full p-8 gap-8"):
        ui.label(DASHBOARD_TITLE).classes("font-semibold text-2xl")
        with ui.grid(columns=3).classes("w-full gap-8"):
            GeneralCard(cache, vitals_key(cfg)).build()
            CommandsCard(cache, commands_key(cfg), services.dispatcher).build("col-span-2")
            LocationCard(cache, telemetry_key(cfg), cfg).build()
            LogsCard(cache, logs_key(cfg)).build("col-span-2")
        with ui.card().classes("w-full"):
            ui.label("Activity").classes("text-lg font-semibold")
            activity = ui.log(max_lines=200).classes("w-full h-40")
            attach_ui_log(activity)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Robot operator dashboard")
    parser.add_argument("--host", default=RUNTIME_CONFIG.UI_HOST, help="Webserver bind host")
    parser.add_argument(
        "--port", type=int, default=RUNTIME_CONFIG.UI_PORT, help="Webserver bind port"
    )
    parser.add_argument("--api-url", default=RUNTIME_CONFIG.API_URL, help="Backend base URL")
    parser.add_argument("--robot-id", default=RUNTIME_CONFIG.ROBOT_ID, help="Robot to watch")
    parser.add_argument(
        "--interval",
        type=float,
        default=RUNTIME_CONFIG.REFETCH_INTERVAL_S,
        help="Polling interval in seconds",
    )
    parser.add_argument(
        "--strict-errors",
        action="store_true",
        help="Show an error instead of the last good data when a poll fails",
    )
    parser.add_argument(
        "--log-level",
        choices=["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set log level",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity; -v=INFO, -vv=DEBUG, -vvv=TRACE",
    )
    parser.add_argument(
        "-q", "--quiet", action="store_true", help="Enable WARNING logging"
    )
    args, _ = parser.parse_known_args(argv)
    return args


def resolve_config(args: argparse.Namespace, base: Config) -> Config:
    cfg = replace(
        base,
        UI_HOST=args.host,
        UI_PORT=int(args.port),
        API_URL=args.api_url,
        ROBOT_ID=args.robot_id,
        REFETCH_INTERVAL_S=float(args.interval),
        KEEP_STALE_ON_ERROR=base.KEEP_STALE_ON_ERROR and not args.strict_errors,
    )
    if cfg.REFETCH_INTERVAL_S <= 0:
        raise SystemExit("--interval must be > 0")
    if cfg.REQUEST_TIMEOUT_S >= cfg.REFETCH_INTERVAL_S:
        # Keep a request from outliving its polling slot
        cfg = replace(cfg, REQUEST_TIMEOUT_S=cfg.REFETCH_INTERVAL_S * 0.8)
    return cfg


def resolve_log_level(args: argparse.Namespace) -> int:
    # Priority: explicit --log-level > -v/-q > env default from constants
    if args.log_level:
        return TRACE if args.log_level == "TRACE" else getattr(logging, args.log_level)
    if args.verbose >= 3:
        return TRACE
    if args.verbose >= 2:
        return logging.DEBUG
    if args.verbose == 1:
        return logging.INFO
    if args.quiet:
        return logging.WARNING
    return LOG_LEVEL


def main(argv: list[str] | None = None) -> None:
    global RUNTIME_CONFIG
    args = _parse_args(argv)
    RUNTIME_CONFIG = resolve_config(args, RUNTIME_CONFIG)

    configure_logging(resolve_log_level(args))
    logging.info(f"Webserver bind: host={RUNTIME_CONFIG.UI_HOST} port={RUNTIME_CONFIG.UI_PORT}")
    logging.info(f"Backend: {RUNTIME_CONFIG.API_URL} robot={RUNTIME_CONFIG.ROBOT_ID}")

    ui.run(
        title=DASHBOARD_TITLE,
        host=RUNTIME_CONFIG.UI_HOST,
        port=RUNTIME_CONFIG.UI_PORT,
        reload=False,
        show=False,
        loop="uvloop" if sys.platform != "win32" else "asyncio",
        http="httptools",
        ws="wsproto",
    )


if __name__ in {"__main__", "__mp_main__"}:
    main()
