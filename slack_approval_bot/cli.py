"""Command-line parsing for the approval bot."""

from __future__ import annotations

import argparse
from typing import Sequence


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="slack-approval-bot",
        description="Slack approval bot over Socket Mode.",
        add_help=False,
    )
    parser.add_argument("channel", nargs="?", help="Channel to post the initial approval request to")
    parser.add_argument("message", nargs="?", help="Text of the initial approval request")
    parser.add_argument("-v", "--verbose", action="store_true", help="verbose output")
    parser.add_argument("-h", "--help", action="store_true", help="show help")
    parser.add_argument("--health-port", type=int, default=None, help="Serve /healthz on this port")
    return parser


def parse_cli_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments; a channel without a message is a usage error."""

    parser = build_parser()
    args = parser.parse_args(argv)
    if args.channel and not args.message and not args.help:
        parser.error("a message is required when a channel is given")
    return args
