import argparse
import asyncio
import logging
import shutil
import sys
import time
from typing import List, Optional

from core.entities import Identity, ToggleOutcome
from presentation.autoscroll import AutoScroller
from presentation.viewport import TextViewport, render_feed_lines
from services.config import load_config
from services.identity import IdentityProvider
from services.logging import setup_logging
from services.scheduler import AsyncioFrameScheduler
from utils.time import format_time_ago
from workflows.feed import FeedSession
from workflows.pipeline_factory import create_feed_services, create_ledger

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 30.0


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Ranked Hacker News feed')
    parser.add_argument('--focus', default='',
                        help='Focus keyword: boosts and filters stories by title')
    parser.add_argument('--identity', default=None,
                        help='Identity key supplied by your auth layer (enables saving)')
    parser.add_argument('--toggle-saved', type=int, metavar='STORY_ID',
                        help='Save or unsave a story')
    parser.add_argument('--saved', action='store_true',
                        help='List saved stories')
    parser.add_argument('--refresh', action='store_true',
                        help='Ignore the cache TTL and refetch now')
    parser.add_argument('--watch', type=float, metavar='SECONDS',
                        help='Auto-scroll the feed for SECONDS')
    parser.add_argument('--speed', type=int, default=None,
                        help='Auto-scroll speed in percent (10-100)')
    parser.add_argument('--height', type=int, default=None,
                        help='Visible lines while watching (default: terminal height)')
    parser.add_argument('--config', default=None,
                        help='Path to config.yml')
    return parser.parse_args(argv)


async def watch(session: FeedSession, seconds: float, speed: int, height: int, frame_rate: float) -> None:
    viewport = TextViewport(render_feed_lines(session.view), height=height)
    session.add_listener(lambda view: viewport.set_lines(render_feed_lines(view)))

    scroller = AutoScroller(viewport, AsyncioFrameScheduler(frame_rate), speed=speed)
    viewport.draw()
    scroller.start()

    deadline = time.monotonic() + seconds
    try:
        while (remaining := deadline - time.monotonic()) > 0:
            await asyncio.sleep(min(POLL_INTERVAL_SECONDS, remaining))
            if await session.poll():
                logger.info("Feed replaced, re-ranked")
    finally:
        scroller.stop()


async def main(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    setup_logging(config.LOG_LEVEL)

    services = create_feed_services(config)
    identity_provider = IdentityProvider(Identity(key=args.identity) if args.identity else None)
    ledger = create_ledger(services, identity_provider)
    session = FeedSession(services.pipeline, ledger, identity_provider, focus_keyword=args.focus)

    await session.start(force_refresh=args.refresh)

    if session.view.stale:
        print("(showing cached stories, source unavailable)", file=sys.stderr)

    if args.toggle_saved is not None:
        outcome = await session.toggle_saved(args.toggle_saved)
        if outcome is ToggleOutcome.AUTH_REQUIRED:
            print("Sign in to save stories (pass --identity)", file=sys.stderr)
            return 1
        if outcome is ToggleOutcome.UNKNOWN_STORY:
            print(f"Story {args.toggle_saved} is not in the current feed", file=sys.stderr)
            return 1
        print(f"Story {args.toggle_saved} {outcome.value}")

    if args.saved:
        saved = ledger.list_saved()
        print(f"Saved ({len(saved)})")
        for entry in saved:
            age = format_time_ago(entry.time) if entry.time else "?"
            print(f"  [{entry.id}] {entry.title or '(untitled)'} | {age} | {entry.url or ''}")
        return 0

    if args.watch:
        height = args.height or max(5, shutil.get_terminal_size().lines - 2)
        await watch(
            session,
            seconds=args.watch,
            speed=args.speed or config.SCROLL_SPEED,
            height=height,
            frame_rate=config.FRAME_RATE,
        )
        return 0

    for line in render_feed_lines(session.view):
        print(line)
    return 0


def cli() -> None:
    sys.exit(asyncio.run(main(parse_args())))


if __name__ == "__main__":
    cli()
