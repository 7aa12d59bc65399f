"""Application entry point for the Slack approval bot."""

from __future__ import annotations

import signal
import sys
import threading
from typing import Sequence

import structlog

from slack_approval_bot.bot import ApprovalBot
from slack_approval_bot.cli import build_parser, parse_cli_args
from slack_approval_bot.config import get_settings
from slack_approval_bot.errors import ConfigError, DispatchError, TransportError
from slack_approval_bot.health import serve_health
from slack_approval_bot.logging_config import configure_logging


def _install_signal_handlers(stop_event: threading.Event) -> None:
    def _request_stop(signum, _frame):
        structlog.get_logger().info("shutdown_requested", signal=signum)
        stop_event.set()

    signal.signal(signal.SIGINT, _request_stop)
    signal.signal(signal.SIGTERM, _request_stop)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_cli_args(argv)
    if args.help:
        build_parser().print_help()
        return 1

    configure_logging(verbose=args.verbose)
    log = structlog.get_logger()

    try:
        settings = get_settings()
        bot = ApprovalBot.from_settings(settings, verbose=args.verbose)
    except ConfigError as exc:
        print(f"fatal: {exc}", file=sys.stderr)
        return 1

    if args.health_port:
        serve_health(bot, port=args.health_port)

    stop_event = threading.Event()
    _install_signal_handlers(stop_event)

    try:
        bot.run(stop_event, channel=args.channel, message=args.message)
    except ConfigError as exc:
        print(f"fatal: {exc}", file=sys.stderr)
        return 1
    except TransportError as exc:
        log.error("startup_connection_failed", error=str(exc))
        return 1
    except DispatchError as exc:
        log.error("bot_aborted", error=str(exc))
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover - manual execution helper
    sys.exit(main())
