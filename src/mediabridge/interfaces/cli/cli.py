from __future__ import annotations

import argparse
import asyncio
import json
import sys
from collections.abc import Iterable
from dataclasses import asdict, is_dataclass
from pathlib import Path
from typing import Any

import structlog

from mediabridge.domain.entities.media import QUALITY_AUTO
from mediabridge.domain.errors import MediaBridgeError, NoSourcesError
from mediabridge.domain.ports.provider import ProviderPort
from mediabridge.infrastructure.config import AppConfig, load_config
from mediabridge.infrastructure.logging.setup import configure_logging
from mediabridge.infrastructure.registry import ProviderRegistry

log = structlog.get_logger(__name__)


def _parse_args(argv: Iterable[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="mediabridge")

    # Config wiring flags (no business logic)
    parser.add_argument(
        "--config",
        default=None,
        help="Path to YAML config file.",
    )
    parser.add_argument(
        "--dotenv",
        default=None,
        help="Path to .env file.",
    )
    parser.add_argument(
        "--plugin-dir",
        default=None,
        help="Override plugins directory.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override log level.",
    )
    parser.add_argument(
        "--log-format",
        default=None,
        choices=["json", "console"],
        help="Override log format.",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("providers", help="List loaded providers.")

    search = sub.add_parser("search", help="Search a provider's catalogue.")
    search.add_argument("provider")
    search.add_argument("query")

    for command, help_text in (
        ("trending", "Trending titles."),
        ("recent", "Recently added titles."),
        ("health", "Check that a provider is reachable."),
    ):
        cmd = sub.add_parser(command, help=help_text)
        cmd.add_argument("provider")

    details = sub.add_parser("details", help="Show details for a media id.")
    details.add_argument("provider")
    details.add_argument("media_id")

    seasons = sub.add_parser("seasons", help="List seasons of a media id.")
    seasons.add_argument("provider")
    seasons.add_argument("media_id")

    episodes = sub.add_parser("episodes", help="List episodes of a season id.")
    episodes.add_argument("provider")
    episodes.add_argument("season_id")

    qualities = sub.add_parser("qualities", help="List qualities of an episode.")
    qualities.add_argument("provider")
    qualities.add_argument("episode_id")

    stream = sub.add_parser("stream", help="Resolve a playable stream URL.")
    stream.add_argument("provider")
    stream.add_argument("episode_id")
    stream.add_argument("--quality", default=QUALITY_AUTO)

    return parser.parse_args(argv)


def _to_jsonable(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    if isinstance(value, list):
        return [_to_jsonable(item) for item in value]
    return value


def _emit(value: Any) -> None:
    json.dump(_to_jsonable(value), sys.stdout, indent=2, ensure_ascii=False, default=str)
    sys.stdout.write("\n")


async def _dispatch(args: argparse.Namespace, registry: ProviderRegistry) -> Any:
    if args.command == "providers":
        return {
            "providers": [
                {"name": provider.name, "kind": provider.kind}
                for provider in registry.all()
            ],
            "load_errors": {str(path): err for path, err in registry.load_errors.items()},
        }

    provider: ProviderPort = registry.get(args.provider)
    if args.command == "search":
        return await provider.search(args.query)
    if args.command == "trending":
        return await provider.get_trending()
    if args.command == "recent":
        return await provider.get_recent()
    if args.command == "health":
        await provider.health_check()
        return {"provider": provider.name, "healthy": True}
    if args.command == "details":
        return await provider.get_media_details(args.media_id)
    if args.command == "seasons":
        return await provider.get_seasons(args.media_id)
    if args.command == "episodes":
        return await provider.get_episodes(args.season_id)
    if args.command == "qualities":
        return await provider.get_available_qualities(args.episode_id)
    if args.command == "stream":
        return await provider.get_stream_url(args.episode_id, args.quality)
    raise ValueError(f"unknown command: {args.command}")


async def run(args: argparse.Namespace, config: AppConfig) -> Any:
    registry = ProviderRegistry(config)
    try:
        registry.load()
        return await _dispatch(args, registry)
    finally:
        await registry.aclose()


def start(argv: Iterable[str] | None = None) -> int:
    """
    Process entrypoint.

    Loads config exactly once, then runs one command against the registry.
    """
    if argv is None:
        argv = sys.argv[1:]

    args = _parse_args(argv)

    config_path = Path(args.config) if args.config else None
    dotenv_path = Path(args.dotenv) if args.dotenv else None

    cli_overrides: dict[str, Any] = {}
    if args.plugin_dir:
        cli_overrides["plugin_dir"] = args.plugin_dir
    if args.log_level:
        cli_overrides["log_level"] = args.log_level
    if args.log_format:
        cli_overrides["log_format"] = args.log_format

    config = load_config(
        config_path=config_path,
        dotenv_path=dotenv_path,
        cli_overrides=cli_overrides,
    )
    configure_logging(config)

    try:
        result = asyncio.run(run(args, config))
    except NoSourcesError as exc:
        print(f"no sources: {exc}", file=sys.stderr)
        return 1
    except MediaBridgeError as exc:
        log.debug("command_failed", command=args.command, exc_info=True)
        print(f"error: {exc}", file=sys.stderr)
        return 1

    _emit(result)
    return 0


if __name__ == "__main__":
    raise SystemExit(start())
