import argparse
import asyncio
import logging
import signal
import sys
from typing import List, Optional

from core.errors import ConfigError
from services.config import load_config, validate_startup
from services.logging import setup_logging
from services.scheduler import Scheduler
from workflows.pipeline_factory import check_active_provider, create_pipeline, seed_default_destination

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Poll the news site and distribute rewritten articles")
    parser.add_argument("--config", help="Path to config.yml")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--once", action="store_true", help="Run a single news check and exit")
    mode.add_argument("--dry-run", action="store_true", help="List new articles without processing them")
    mode.add_argument("--url", help="Process a single article URL")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> int:
    setup_logging(logging.DEBUG if args.debug else logging.INFO)

    try:
        config = load_config(args.config)
        validate_startup(config)
    except (ConfigError, FileNotFoundError) as e:
        logger.error(f"Cannot start: {e}")
        return 1

    pipeline = create_pipeline(config)
    await pipeline.database.init_tables()
    await seed_default_destination(pipeline)

    if not args.dry_run:
        await check_active_provider(pipeline)

    # ----------------------------
    # One-shot modes
    # ----------------------------
    if args.dry_run:
        for item in await pipeline.dispatcher.pending():
            print(f"[{item.category or '-'}] {item.title}\n    {item.url}")
        return 0

    if args.url:
        processed = await pipeline.dispatcher.process_url(args.url)
        return 0 if processed else 2

    if args.once:
        await pipeline.dispatcher.run_cycle()
        return 0

    # ----------------------------
    # Scheduler until SIGINT/SIGTERM
    # ----------------------------
    scheduler = Scheduler(pipeline.dispatcher.run_cycle, interval_seconds=config.POLL_INTERVAL_SECONDS)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, scheduler.stop)
        except NotImplementedError:
            # Windows event loops have no signal handlers
            pass

    await scheduler.run_forever()
    return 0


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    try:
        code = asyncio.run(run(args))
    except KeyboardInterrupt:
        code = 0
    sys.exit(code)


if __name__ == "__main__":
    main()
