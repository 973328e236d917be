"""
Command Line Entry Point
========================

``inquiry-board tick``          one worker tick, for an external scheduler (cron)
``inquiry-board serve-worker``  APScheduler interval loop in the foreground
``inquiry-board init-db``       create tables
``inquiry-board save-server``   store a managed server with encrypted secrets
"""

import argparse
import asyncio
import signal
import sys
from typing import List, Optional

from inquiry_board.bootstrap import Services, build_services
from inquiry_board.config import Settings, get_settings
from inquiry_board.core import ApplicationException
from inquiry_board.shared.infrastructure.logging import get_logger, setup_logging
from inquiry_board.triage.infrastructure import WorkerScheduler

logger = get_logger(__name__)

SERVER_FIELDS = (
    "site_name", "display_name", "server_ip", "ssh_user", "ssh_password",
    "db_user", "db_password", "site_url", "site_login_id", "site_login_pw",
    "admin_url", "admin_login_id", "admin_login_pw", "notes",
)


def _require_worker(services: Services):
    if services.triage_worker is None:
        raise ApplicationException(
            f"Reasoning service '{services.settings.llm_provider}' is not configured; worker cannot run"
        )
    return services.triage_worker


async def run_tick(settings: Settings) -> int:
    services = build_services(settings)
    try:
        worker = _require_worker(services)
        report = await worker.run_tick()
        return 0 if report.ran else 1
    finally:
        await services.close()


async def serve_worker(settings: Settings) -> int:
    services = build_services(settings)
    scheduler = WorkerScheduler(settings.worker_interval_seconds)
    stop = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    try:
        worker = _require_worker(services)
        await scheduler.start(worker.run_tick)
        await stop.wait()
        return 0
    finally:
        await scheduler.stop()
        await services.close()


async def init_db(settings: Settings) -> int:
    services = build_services(settings)
    try:
        await services.database.create_tables()
        logger.info("Database tables created")
        return 0
    finally:
        await services.close()


async def save_server(settings: Settings, values: dict) -> int:
    services = build_services(settings)
    try:
        async with services.store_provider() as store:
            server_id = await store.save_server(values)
        logger.info("Server saved", extra={"site_name": values["site_name"], "server_id": server_id})
        return 0
    finally:
        await services.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="inquiry-board", description="Inquiry board triage worker")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("tick", help="Run one worker tick and exit")
    commands.add_parser("serve-worker", help="Run the worker on an interval until interrupted")
    commands.add_parser("init-db", help="Create database tables")

    server = commands.add_parser("save-server", help="Insert or update a managed server")
    server.add_argument("--site-name", required=True)
    server.add_argument("--display-name", required=True)
    server.add_argument("--server-ip", required=True)
    server.add_argument("--ssh-user", default="root")
    server.add_argument("--ssh-password", default="")
    server.add_argument("--db-user", default="root")
    server.add_argument("--db-password", default="")
    server.add_argument("--site-url", default="")
    server.add_argument("--site-login-id", default="")
    server.add_argument("--site-login-pw", default="")
    server.add_argument("--admin-url", default="")
    server.add_argument("--admin-login-id", default="")
    server.add_argument("--admin-login-pw", default="")
    server.add_argument("--notes", default=None)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    setup_logging(settings.log_level, settings.environment)

    try:
        if args.command == "tick":
            return asyncio.run(run_tick(settings))
        if args.command == "serve-worker":
            return asyncio.run(serve_worker(settings))
        if args.command == "init-db":
            return asyncio.run(init_db(settings))
        values = {name: getattr(args, name) for name in SERVER_FIELDS}
        return asyncio.run(save_server(settings, values))
    except ApplicationException as e:
        logger.error("Command failed", extra={"command": args.command, "error": e.message})
        return 2


if __name__ == "__main__":
    sys.exit(main())
