#!/usr/bin/env python
"""Entry point for the automated blog generation pipeline.

    python main.py                          # run the scheduler until interrupted
    python main.py --load-topics topics.yaml
    python main.py --generate-now
    python main.py --status
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List

import structlog
import yaml

from app import config
from app.errors import AutomationError
from pipeline.scheduler import BlogScheduler
from pipeline.service import BlogAutomationService
from pipeline.topic_queue import TopicEntry


def configure_logging(level: str = config.LOG_LEVEL) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    # Route structlog through the stdlib root logger so LOG_LEVEL applies to both.
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.processors.format_exc_info,
            structlog.processors.KeyValueRenderer(key_order=["event"]),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def read_topics_file(path: Path) -> List[TopicEntry]:
    """Read topics from a YAML list, or one topic per line for any other file."""
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in (".yaml", ".yml"):
        data = yaml.safe_load(text)
        if not isinstance(data, list):
            raise ValueError(f"{path} must contain a list of topics")
        return data
    return [line.strip() for line in text.splitlines() if line.strip()]


async def serve(service: BlogAutomationService) -> None:
    scheduler = BlogScheduler(service)
    scheduler.start()
    try:
        await asyncio.Event().wait()
    finally:
        scheduler.shutdown()


async def run(args: argparse.Namespace) -> int:
    service = BlogAutomationService.from_config()

    if args.load_topics:
        created = await service.load_topics(read_topics_file(Path(args.load_topics)), args.category)
        print(f"Loaded {len(created)} topics into the automation queue.")

    if args.generate_now:
        post = await service.generate_now()
        if post is None:
            print("No topics available in queue.")
        else:
            print(f"Published #{post.sequence_number}: {post.heading} ({post.slug})")

    if args.status:
        print(json.dumps(await service.queue_status(), indent=2, default=str))

    if not (args.load_topics or args.generate_now or args.status):
        await serve(service)
    return 0


def cli(argv: List[str] = None) -> int:
    parser = argparse.ArgumentParser(description="Automated blog generation and publishing.")
    parser.add_argument("--load-topics", metavar="FILE", help="Replace the queue with topics from FILE")
    parser.add_argument("--category", default="Tips", help="Category for topics loaded from FILE")
    parser.add_argument("--generate-now", action="store_true", help="Run one generation cycle now")
    parser.add_argument("--status", action="store_true", help="Print queue status")
    args = parser.parse_args(argv)

    configure_logging()
    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        logging.getLogger(__name__).info("Shutting down scheduler...")
        return 0
    except (AutomationError, OSError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(cli())
