"""Command-line interface for telety.

Provides the ``host`` and ``join`` commands. Both authenticate against the
telety.io API named by the webhook URL, then run an interactive session
until the user quits.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="telety",
        description="Interactive shell sessions shared over a telety.io channel",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to YAML configuration file (default: config/telety.yaml)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    host_parser = subparsers.add_parser(
        "host", help="Create TTY session piping stdin to a channel webhook",
    )
    join_parser = subparsers.add_parser(
        "join", help="Join a telety channel with a TTY interface",
    )
    for sub in (host_parser, join_parser):
        sub.add_argument("webhook", help="telety.io webhook URL")
        sub.add_argument(
            "-t", "--auth-token", default=None,
            help="telety.io authentication token",
        )
        sub.add_argument(
            "-p", "--prompt-text", default=None,
            help="Customize the prompt text",
        )
    join_parser.add_argument(
        "-P", "--print-history", action="store_true",
        help="Output all channel history",
    )

    return parser.parse_args(argv)


def channel_id(webhook: str) -> str:
    """The channel id is the second-to-last path segment of the webhook."""
    segments = urlsplit(webhook).path.split("/")
    return segments[-2] if len(segments) >= 2 else ""


async def _run_session(settings, args) -> int:
    """Authenticate, then run the requested session to completion."""
    from telety.api.http_backend import HttpChannelApi
    from telety.auth import login
    from telety.session import HostSession, JoinSession
    from telety.ui import ConsoleWriter

    ui = ConsoleWriter()
    auth = await login(
        args.webhook,
        args.auth_token,
        settings.token.get_secret_value() or None,
        ui,
        timeout=settings.http.timeout,
    )

    prompt_config = settings.prompt
    if args.prompt_text:
        prompt_config = prompt_config.model_copy(update={"text": args.prompt_text})

    channel = channel_id(args.webhook)
    api = HttpChannelApi(args.webhook, auth, channel=channel, timeout=settings.http.timeout)
    async with api:
        if args.command == "host":
            session = HostSession(prompt_config, ui=ui, api=api)
        else:
            session = JoinSession(
                api,
                auth,
                channel,
                prompt_config,
                ui=ui,
                channel_config=settings.channel,
                print_history=args.print_history,
            )
        logger.info("Starting %s session on channel %s", session.mode, channel)
        return await session.run()


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the telety CLI."""
    args = parse_args(argv)

    if args.command is None:
        parse_args(["--help"])
        return

    from telety.config.settings import load_settings
    from telety.errors import AuthError, InvalidTokenError
    from telety.utils.logging import setup_logging

    settings = load_settings(args.config)

    if args.verbose:
        settings.logging.level = "DEBUG"

    setup_logging(settings.logging)

    try:
        code = asyncio.run(_run_session(settings, args))
    except (InvalidTokenError, AuthError) as e:
        print(f"telety: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        # interrupted before the session installed its own handler
        sys.exit(0)
    sys.exit(code)


if __name__ == "__main__":
    main()
