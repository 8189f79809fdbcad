"""
SoundCloud Toolkit CLI - Command Line Interface

Runs one bulk operation per invocation and prints its JSON result.

Exit codes:
    0  success
    1  operation failed, was cancelled, or some bulk items failed
    2  invalid input or configuration
    3  authentication required (missing or rejected credential)
"""

import argparse
import asyncio
import json
import logging
import signal
import sys
from typing import Any, Dict, List, Optional, Tuple

from scclient import __version__
from scclient.cancellation import CancelToken
from scclient.client import SoundCloudClient
from scclient.exceptions import AuthError, OperationCancelledError, SoundCloudError
from scclient.models import Credential
from scclient.resolve_cache import ResolveCache

from .bulk import bulk_unfollow, bulk_unlike
from .config import ToolkitConfig
from .exceptions import MergeError, ValidationError
from .likes import create_playlist_from_likes
from .logger import setup_logging
from .maintenance import check_playlist_health, deduplicate_playlist
from .merge import MergeOrchestrator
from .resolver import resolve_batch

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INVALID = 2
EXIT_AUTH = 3


def create_parser() -> argparse.ArgumentParser:
    """
    Create argument parser for CLI.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog="sc-toolkit",
        description="Bulk playlist, like and follow operations for SoundCloud",
        epilog="Example: sc-toolkit merge 1111 2222 --title 'Weekend Mix'",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        metavar="SECONDS",
        help="Cancel the operation after this many seconds",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose debug logging",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    commands = parser.add_subparsers(dest="command", required=True, metavar="COMMAND")

    merge = commands.add_parser("merge", help="Merge 2-10 playlists into a deduplicated playlist")
    merge.add_argument("playlist_ids", nargs="+", metavar="PLAYLIST_ID")
    merge.add_argument("--title", default=None, help="Title of the merged playlist")

    likes = commands.add_parser("likes-to-playlist", help="Create a playlist from liked tracks")
    likes.add_argument("--title", default=None, help="Title of the new playlist")
    likes.add_argument(
        "--track-ids",
        nargs="+",
        default=None,
        metavar="TRACK_ID",
        help="Only these liked tracks (default: all likes)",
    )

    dedupe = commands.add_parser("dedupe", help="Find (and remove) duplicate tracks in a playlist")
    dedupe.add_argument("playlist_id", metavar="PLAYLIST_ID")
    dedupe.add_argument("--confirm", action="store_true", help="Rewrite the playlist")

    health = commands.add_parser("health", help="Report blocked and preview-only tracks")
    health.add_argument("playlist_id", metavar="PLAYLIST_ID")
    health.add_argument("--remove", action="store_true", help="Drop unplayable tracks")

    unlike = commands.add_parser("unlike", help="Unlike up to 2000 tracks")
    unlike.add_argument("track_ids", nargs="+", metavar="TRACK_ID")

    unfollow = commands.add_parser("unfollow", help="Unfollow up to 2000 users")
    unfollow.add_argument("user_ids", nargs="+", metavar="USER_ID")

    resolve = commands.add_parser("resolve", help="Resolve up to 50 SoundCloud links")
    resolve.add_argument("urls", nargs="+", metavar="URL")

    return parser


def credential_from_config(config: ToolkitConfig) -> Credential:
    """Build the user credential from SOUNDCLOUD_ACCESS_TOKEN/SOUNDCLOUD_REFRESH_TOKEN.

    Raises:
        AuthError: If no access token is configured
    """
    if not config.access_token:
        raise AuthError("SOUNDCLOUD_ACCESS_TOKEN is not set; authenticate first")
    return Credential(access_token=config.access_token, refresh_token=config.refresh_token or "")


def exit_code_for(error: BaseException) -> int:
    """Map an operation failure to a process exit code."""
    if isinstance(error, MergeError) and error.cause is not None:
        return exit_code_for(error.cause)
    if isinstance(error, AuthError):
        return EXIT_AUTH
    if isinstance(error, (ValidationError, EnvironmentError, ValueError)):
        return EXIT_INVALID
    return EXIT_FAILURE


def error_payload(error: BaseException) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"error": str(error), "type": type(error).__name__}
    if isinstance(error, MergeError):
        payload["stage"] = error.stage
        payload["createdCollectionIds"] = error.created_collection_ids
        payload["rolledBackCollectionIds"] = error.rolled_back_collection_ids
    if isinstance(error, SoundCloudError) and error.status_code is not None:
        payload["statusCode"] = error.status_code
    return payload


async def run_command(
    args: argparse.Namespace,
    config: ToolkitConfig,
    client: SoundCloudClient,
    credential: Credential,
    cancel: CancelToken,
) -> Tuple[Dict[str, Any], int]:
    """Dispatch one sub-command and return its JSON payload and exit code."""
    if args.command == "merge":
        orchestrator = MergeOrchestrator.from_config(client, config)
        result = await orchestrator.merge(args.playlist_ids, credential, title=args.title, cancel=cancel)
        return result.to_dict(), EXIT_OK

    if args.command == "likes-to-playlist":
        result = await create_playlist_from_likes(
            client,
            credential,
            title=args.title,
            track_ids=args.track_ids,
            inter_call_delay=config.inter_call_delay,
            target_pause=config.target_pause,
            rollback_on_failure=config.merge_rollback,
            cancel=cancel,
        )
        return result.to_dict(), EXIT_OK

    if args.command == "dedupe":
        report = await deduplicate_playlist(
            client,
            credential,
            args.playlist_id,
            confirm=args.confirm,
            inter_call_delay=config.inter_call_delay,
            cancel=cancel,
        )
        return report.to_dict(), EXIT_OK

    if args.command == "health":
        report = await check_playlist_health(
            client,
            credential,
            args.playlist_id,
            remove=args.remove,
            inter_call_delay=config.inter_call_delay,
            cancel=cancel,
        )
        return report.to_dict(), EXIT_OK

    if args.command in ("unlike", "unfollow", "resolve"):
        if args.command == "unlike":
            bulk = await bulk_unlike(
                client, credential, args.track_ids, pause=config.bulk_pause, cancel=cancel
            )
        elif args.command == "unfollow":
            bulk = await bulk_unfollow(
                client, credential, args.user_ids, pause=config.bulk_pause, cancel=cancel
            )
        else:
            cache = ResolveCache(client, ttl=config.resolve_cache_ttl)
            bulk = await resolve_batch(
                cache, credential, args.urls, pause=config.bulk_pause, cancel=cancel
            )
        return bulk.to_dict(), EXIT_FAILURE if bulk.failed_ids else EXIT_OK

    raise ValidationError(f"Unknown command: {args.command}")


def _install_signal_handlers(cancel: CancelToken) -> List[int]:
    loop = asyncio.get_running_loop()
    installed = []
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, cancel.cancel, f"received {signal.Signals(signum).name}")
        except (NotImplementedError, RuntimeError):
            # Not available on this platform or outside the main thread
            continue
        installed.append(signum)
    return installed


async def async_main(args: argparse.Namespace, http_client: Optional[Any] = None) -> int:
    """
    Async main function.

    Args:
        args: Parsed CLI arguments
        http_client: Optional httpx.AsyncClient to use for upstream calls

    Returns:
        Process exit code
    """
    try:
        config = ToolkitConfig.from_environment()
        config.validate()
        credential = credential_from_config(config)
    except (EnvironmentError, ValueError, AuthError) as e:
        logger.error(f"Configuration error: {e}")
        print(json.dumps(error_payload(e), indent=2), file=sys.stderr)
        return exit_code_for(e)

    cancel = CancelToken.with_timeout(args.timeout) if args.timeout else CancelToken()
    installed = _install_signal_handlers(cancel)

    def on_refresh(_: Credential) -> None:
        logger.warning("Access token was refreshed for this run; stored tokens are now stale")

    try:
        async with SoundCloudClient(
            config.to_soundcloud_config(), http_client=http_client, on_refresh=on_refresh
        ) as client:
            payload, exit_code = await run_command(args, config, client, credential, cancel)
    except (MergeError, SoundCloudError, OperationCancelledError, ValidationError) as e:
        logger.error(f"{args.command} failed: {e}")
        if args.verbose:
            logger.exception("Detailed error traceback:")
        print(json.dumps(error_payload(e), indent=2), file=sys.stderr)
        return exit_code_for(e)
    finally:
        loop = asyncio.get_running_loop()
        for signum in installed:
            loop.remove_signal_handler(signum)

    print(json.dumps(payload, indent=2))
    return exit_code


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Returns:
        Process exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging()
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        return asyncio.run(async_main(args))
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
