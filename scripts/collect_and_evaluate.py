#!/usr/bin/env python3
"""
One-shot evaluation run.

Collects candidates from every enabled source, resolves trend scores,
evaluates, persists, ranks and notifies for one evaluation date.

Usage:
    python scripts/collect_and_evaluate.py                    # today
    python scripts/collect_and_evaluate.py --date 2024-12-15
    python scripts/collect_and_evaluate.py --init-db          # create tables first

Exit code is 1 when the run cannot start (database unreachable).
"""
import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from game_evaluator.core.config import settings
from game_evaluator.core.database import init_db
from game_evaluator.core.logging import configure_logging, get_logger
from game_evaluator.services.pipeline.orchestrator import PipelineFatalError
from game_evaluator.services.pipeline.run_guard import PipelineAlreadyRunningError, get_runner
from game_evaluator.services.ranking import parse_evaluation_date

configure_logging(level=settings.LOG_LEVEL, json_output=settings.LOG_JSON)
logger = get_logger(__name__)


def _log_summary(result) -> None:
    logger.info("=" * 60)
    logger.info(f"Evaluation date: {result.evaluation_date.isoformat()}")
    logger.info(f"Collected: {result.collected}  Unique: {result.unique}  Filtered: {result.filtered}")
    logger.info(
        f"Evaluated: {result.evaluated} ({result.default_evaluations} default)  "
        f"Persisted: {result.persisted} ({result.persistence_failures} failed)"
    )
    stats = result.stats
    logger.info(
        f"Total games: {stats.get('total_games', 0)}  "
        f"Average score: {stats.get('average_score')}"
    )
    logger.info("=" * 60)


def main() -> int:
    parser = argparse.ArgumentParser(description="Collect and evaluate game releases")
    parser.add_argument("--date", type=str, metavar="YYYY-MM-DD", help="Evaluation date (default: today)")
    parser.add_argument("--init-db", action="store_true", help="Create missing tables before running")
    args = parser.parse_args()

    if args.date:
        try:
            parse_evaluation_date(args.date)
        except ValueError as e:
            parser.error(str(e))

    if args.init_db:
        logger.info("Creating database tables...")
        init_db()

    try:
        result = asyncio.run(get_runner().run(evaluation_date=args.date))
    except PipelineFatalError as e:
        logger.error(f"Evaluation run failed: {e}")
        return 1
    except PipelineAlreadyRunningError as e:
        logger.error(str(e))
        return 1

    _log_summary(result)
    return 0


if __name__ == "__main__":
    sys.exit(main())
