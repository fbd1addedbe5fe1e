#!/usr/bin/env python3
"""
Check whether the metro is broken and notify on changes.

Usage:
    python run_bot.py                          # Single check
    python run_bot.py --continuous             # Check every CHECK_INTERVAL seconds
    python run_bot.py --continuous --interval 60
    python run_bot.py --dry-run                # In-memory state, notifications simulated
"""

import argparse
import logging
import os
import sys
from pathlib import Path

# Add parent directory to path for imports
API_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = API_DIR.parent
sys.path.insert(0, str(PROJECT_ROOT))

from metrobot.bot import BotContext, run_cycle, run_forever  # noqa: E402
from metrobot.config import BotConfig  # noqa: E402
from metrobot.state_store import MemoryStore  # noqa: E402


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description='Metro status bot')
    parser.add_argument('--continuous', '-c', action='store_true',
                        help='Keep checking on a fixed interval')
    parser.add_argument('--interval', type=int, default=None,
                        help='Seconds between checks (default: CHECK_INTERVAL)')
    parser.add_argument('--dry-run', action='store_true',
                        help='Use in-memory state and never post')
    return parser.parse_args(argv)


def build_context(args):
    config = BotConfig.from_env()
    store = None
    if args.dry_run:
        config.notifications_enabled = False
        store = MemoryStore()
    return BotContext.from_config(config, store=store)


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(
        level=os.getenv('LOG_LEVEL', 'INFO'),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    ctx = build_context(args)
    if args.continuous:
        run_forever(ctx, interval=args.interval)
        return 0

    result = run_cycle(ctx)
    return 0 if result.success else 1


if __name__ == '__main__':
    sys.exit(main())
