#!/usr/bin/env python3
"""
Command line entry point for coin-analyzer.
"""
import argparse
import asyncio
import logging
import sys
from pathlib import Path

from rich.console import Console

from .api.client import AnalysisClient
from .api.errors import AnalysisError
from .config import BackoffPolicy, ClientConfig
from .core.service import CoinAnalysisService
from .core.workers import AsyncWorkerPool
from .ui.rich_ui import batch_table, show_analysis, show_error
from .utils.log_utils import configure_logging, get_logger
from .utils.utils import find_images

logger = get_logger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description='Identify coins from photos using the analysis backend')
    parser.add_argument('--base-url',
                        help='Backend base URL (default: $COIN_ANALYZER_BASE_URL or the hosted backend)')
    parser.add_argument('--max-retries',
                        type=int,
                        help='Extra attempts after a transient failure (default: 1)')
    parser.add_argument('--backoff',
                        choices=[p.value for p in BackoffPolicy],
                        help='Wait between attempts (default: exponential)')
    parser.add_argument('--timeout',
                        type=float,
                        help='Per-request timeout in seconds (default: 30)')
    parser.add_argument('--debug',
                        action='store_true',
                        help='Enable debug logging')

    commands = parser.add_subparsers(dest='command', required=True)

    analyze = commands.add_parser('analyze', help='Analyze one coin photo, optionally with its back side')
    analyze.add_argument('image', help='Photo of the coin (front side when --back is given)')
    analyze.add_argument('--back', help='Photo of the back side of the coin')

    batch = commands.add_parser('batch', help='Analyze every image under a directory')
    batch.add_argument('input', help='Directory to scan for coin photos')
    batch.add_argument('--concurrency',
                       type=int,
                       default=4,
                       help='Maximum number of uploads in flight (default: 4)')

    commands.add_parser('health', help='Check the backend /health endpoint')
    commands.add_parser('ping', help='Check that the backend server is reachable')
    return parser.parse_args(argv)


def build_config(args) -> ClientConfig:
    return ClientConfig.from_env().with_overrides(
        base_url=args.base_url,
        max_retries=args.max_retries,
        backoff=args.backoff,
        request_timeout=args.timeout,
    )


async def run(args, config: ClientConfig, console: Console) -> int:
    async with AnalysisClient(config) as client:
        service = CoinAnalysisService(client)
        try:
            if args.command == 'analyze':
                if args.back:
                    analysis = await service.analyze_both_sides(Path(args.image), Path(args.back))
                else:
                    analysis = await service.analyze_single(Path(args.image))
                show_analysis(analysis, console)
            elif args.command == 'batch':
                root = Path(args.input)
                images = find_images(root)
                if not images:
                    logger.error(f"No images found under {root}")
                    return 1
                pool = AsyncWorkerPool(images, service, max_concurrent=args.concurrency)
                results = await pool.analyze_all()
                console.print(batch_table(results))
                return 0 if all(r.ok for r in results.values()) else 1
            elif args.command == 'health':
                await client.check_health()
                console.print("[green]Backend is healthy[/green]")
            elif args.command == 'ping':
                console.print(await client.test_connection())
        except AnalysisError as err:
            show_error(err)
            return 1
    return 0


def main(argv=None):
    args = parse_args(argv)
    configure_logging(logging.DEBUG if args.debug else logging.WARNING)

    if args.command == 'analyze':
        for path in filter(None, (args.image, args.back)):
            if not Path(path).exists():
                logger.error(f"Error: Path '{path}' does not exist.")
                sys.exit(1)

    try:
        config = build_config(args)
    except ValueError as err:
        logger.error(f"Error: {err}")
        sys.exit(2)

    sys.exit(asyncio.run(run(args, config, Console())))


if __name__ == "__main__":
    main()
