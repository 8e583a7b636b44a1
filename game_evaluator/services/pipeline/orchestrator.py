"""
Evaluation pipeline orchestrator.

One run walks a fixed sequence of states:

    IDLE -> COLLECTING -> FILTERING -> TREND_RESOLVING -> EVALUATING
         -> PERSISTING -> RANKING -> NOTIFYING -> DONE

The only fatal outcome is an unreachable database at start-up (FAILED).
Everything after that degrades per item: a collector that fails contributes
nothing, a trend lookup that fails scores 0, an evaluation that fails gets
the neutral default, and a persistence failure skips that one game. A
ranking failure sends an error notice and the run still reaches DONE with
empty rankings.

Any other exception escaping a stage is reported once through
notifier.send_error (with the stage name as context) and re-raised.

Work is sequential by stage and by item; the explicit delays between trend
lookups, evaluations and notifications are the rate limiting.
"""
import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from game_evaluator.core.config import settings as default_settings
from game_evaluator.core.database import check_connection
from game_evaluator.core.logging import clear_run_id, get_logger, set_run_id
from game_evaluator.core.metrics import persistence_failures_total, pipeline_runs_total
from game_evaluator.models import CandidateRecord, CollectionWindow, EvaluationResult, GameType, RankingRow
from game_evaluator.repositories.evaluation_repository import EvaluationRepository
from game_evaluator.repositories.game_repository import GameRepository
from game_evaluator.services.pipeline.dedup import merge, quality_prefilter, select_trend_candidates
from game_evaluator.services.ranking import RankingService, parse_evaluation_date

logger = get_logger(__name__)


class PipelineState(str, Enum):
    IDLE = "idle"
    COLLECTING = "collecting"
    FILTERING = "filtering"
    TREND_RESOLVING = "trend_resolving"
    EVALUATING = "evaluating"
    PERSISTING = "persisting"
    RANKING = "ranking"
    NOTIFYING = "notifying"
    DONE = "done"
    FAILED = "failed"


class PipelineFatalError(RuntimeError):
    """The run could not start (database unreachable)."""


@dataclass
class PipelineResult:
    """Summary of one pipeline run."""

    run_id: str
    evaluation_date: date
    states: List[PipelineState] = field(default_factory=list)
    collected: int = 0
    unique: int = 0
    filtered: int = 0
    trend_lookups: int = 0
    evaluated: int = 0
    default_evaluations: int = 0
    persisted: int = 0
    persistence_failures: int = 0
    rankings: Dict[str, List[RankingRow]] = field(default_factory=dict)
    stats: Dict[str, Any] = field(default_factory=dict)

    @property
    def state(self) -> Optional[PipelineState]:
        return self.states[-1] if self.states else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "evaluation_date": self.evaluation_date.isoformat(),
            "state": self.state.value if self.state else None,
            "states": [s.value for s in self.states],
            "collected": self.collected,
            "unique": self.unique,
            "filtered": self.filtered,
            "trend_lookups": self.trend_lookups,
            "evaluated": self.evaluated,
            "default_evaluations": self.default_evaluations,
            "persisted": self.persisted,
            "persistence_failures": self.persistence_failures,
            "rankings": {k: [row.to_dict() for row in rows] for k, rows in self.rankings.items()},
            "stats": self.stats,
        }


class EvaluationPipeline:
    """
    Runs one evaluation for a date.

    Collaborators default to the production implementations built from
    settings; tests inject fakes.

    Args:
        db: Database session
        collectors: Collectors in priority order
        trend_resolver: TrendResolver
        evaluator: AIEvaluator
        notifier: SlackNotifier
        sleep: Awaitable used for the inter-item delays
        owns_session: Close db when the run finishes
    """

    def __init__(
        self,
        db: Session,
        collectors: Optional[Sequence[Any]] = None,
        trend_resolver=None,
        evaluator=None,
        notifier=None,
        settings=None,
        sleep=asyncio.sleep,
        trend_delay: Optional[float] = None,
        evaluation_delay: Optional[float] = None,
        notification_delay: Optional[float] = None,
        owns_session: bool = False
    ):
        self.db = db
        self.owns_session = owns_session
        self.settings = settings or default_settings
        self._sleep = sleep
        self._owned = []

        if collectors is None:
            from game_evaluator.services.collectors import build_default_collectors
            collectors = build_default_collectors(self.settings)
        self.collectors = list(collectors)

        if trend_resolver is None:
            from game_evaluator.services.trends import TrendResolver, build_providers
            trend_resolver = TrendResolver(
                build_providers(self.settings),
                max_keyword_length=self.settings.TREND_KEYWORD_MAX_LENGTH
            )
            self._owned.append(trend_resolver)
        self.trend_resolver = trend_resolver

        if evaluator is None:
            from game_evaluator.services.evaluation import AIEvaluator
            evaluator = AIEvaluator(settings=self.settings)
            self._owned.append(evaluator)
        self.evaluator = evaluator

        if notifier is None:
            from game_evaluator.services.notifications import SlackNotifier
            notifier = SlackNotifier(db=db, settings=self.settings)
            self._owned.append(notifier)
        self.notifier = notifier

        self.trend_delay = self.settings.TREND_REQUEST_DELAY if trend_delay is None else trend_delay
        self.evaluation_delay = (
            self.settings.EVALUATION_REQUEST_DELAY if evaluation_delay is None else evaluation_delay
        )
        self.notification_delay = (
            self.settings.NOTIFICATION_DELAY if notification_delay is None else notification_delay
        )

    # ========================================================================
    # Run
    # ========================================================================

    async def run(self, evaluation_date=None) -> PipelineResult:
        """
        Execute a full run.

        Args:
            evaluation_date: date or YYYY-MM-DD string (today by default)

        Returns:
            PipelineResult with counts, state history, rankings and stats

        Raises:
            PipelineFatalError: If the database is unreachable at start-up
        """
        evaluation_date = parse_evaluation_date(evaluation_date) if evaluation_date else date.today()
        run_id = uuid.uuid4().hex[:12]
        token = set_run_id(run_id)
        result = PipelineResult(run_id=run_id, evaluation_date=evaluation_date)

        try:
            self._enter(result, PipelineState.IDLE)
            logger.info(f"Starting evaluation run for {evaluation_date.isoformat()}")

            if not check_connection(self.db):
                await self._fail(result, "Database connection failed")

            window = CollectionWindow(
                reference_date=evaluation_date,
                lookback_days=self.settings.COLLECTION_LOOKBACK_DAYS,
                lookahead_days=self.settings.COLLECTION_LOOKAHEAD_DAYS,
            )

            self._enter(result, PipelineState.COLLECTING)
            candidates = await self._collect(window)
            result.collected = len(candidates)

            self._enter(result, PipelineState.FILTERING)
            unique = merge(candidates)
            filtered = quality_prefilter(unique, self.settings.QUALITY_THRESHOLD)
            result.unique = len(unique)
            result.filtered = len(filtered)
            logger.info(
                f"{result.collected} collected, {result.unique} unique, "
                f"{result.filtered} after quality filter"
            )

            self._enter(result, PipelineState.TREND_RESOLVING)
            trend_scores = await self._resolve_trends(filtered)
            result.trend_lookups = len(trend_scores)

            self._enter(result, PipelineState.EVALUATING)
            evaluated = await self._evaluate(filtered, trend_scores)
            result.evaluated = len(evaluated)
            result.default_evaluations = sum(1 for _, e in evaluated if e.is_default)

            self._enter(result, PipelineState.PERSISTING)
            result.persisted, result.persistence_failures = self._persist(evaluated, evaluation_date)

            self._enter(result, PipelineState.RANKING)
            try:
                result.rankings, result.stats = self._rank(evaluation_date)
            except Exception as e:
                logger.error(f"Ranking failed: {e}", exc_info=True)
                self._rollback()
                await self._send_error(str(e), PipelineState.RANKING.value)
                result.rankings = {}
                result.stats = {"evaluation_date": evaluation_date.isoformat(), "total_games": 0}

            self._enter(result, PipelineState.NOTIFYING)
            await self._notify(result)

            self._enter(result, PipelineState.DONE)
            pipeline_runs_total.labels(status="success").inc()
            logger.info(
                f"Evaluation run complete: {result.persisted} games persisted, "
                f"{result.default_evaluations} default evaluations"
            )
            return result
        except PipelineFatalError:
            raise
        except Exception as e:
            stage = result.state.value if result.state else PipelineState.IDLE.value
            pipeline_runs_total.labels(status="error").inc()
            logger.error(f"Evaluation run aborted during {stage}: {e}", exc_info=True)
            await self._send_error(str(e), stage)
            raise
        finally:
            await self._close_owned()
            clear_run_id(token)

    def _enter(self, result: PipelineResult, state: PipelineState) -> None:
        result.states.append(state)
        logger.debug(f"Pipeline state -> {state.value}")

    async def _fail(self, result: PipelineResult, message: str) -> None:
        self._enter(result, PipelineState.FAILED)
        pipeline_runs_total.labels(status="failed").inc()
        logger.error(f"Evaluation run failed: {message}")
        await self._send_error(message, "pipeline start-up")
        raise PipelineFatalError(message)

    async def _send_error(self, message: str, context: str) -> None:
        try:
            await self.notifier.send_error(message, context)
        except Exception as e:
            logger.error(f"Error notification failed: {e}")

    def _rollback(self) -> None:
        try:
            self.db.rollback()
        except Exception as e:
            logger.warning(f"Rollback failed: {e}")

    async def _delay(self, seconds: float) -> None:
        if seconds > 0:
            await self._sleep(seconds)

    # ========================================================================
    # Stages
    # ========================================================================

    async def _collect(self, window: CollectionWindow) -> List[CandidateRecord]:
        candidates: List[CandidateRecord] = []
        for collector in self.collectors:
            name = getattr(collector, "provider_name", type(collector).__name__)
            try:
                records = await collector.collect(window)
            except Exception as e:
                logger.error(f"Collector {name} raised: {e}", exc_info=True)
                continue
            candidates.extend(records or [])
        return candidates

    async def _resolve_trends(self, filtered: List[CandidateRecord]) -> Dict[str, float]:
        targets = select_trend_candidates(
            filtered,
            scored_limit=self.settings.TREND_SCORED_LIMIT,
            total_limit=self.settings.TREND_TOTAL_LIMIT,
        )
        logger.info(f"Resolving trend scores for {len(targets)} candidates")

        scores: Dict[str, float] = {}
        for index, candidate in enumerate(targets):
            if index:
                await self._delay(self.trend_delay)
            try:
                scores[candidate.title] = await self.trend_resolver.trend_score(candidate)
            except Exception as e:
                logger.warning(f"Trend resolution failed for '{candidate.title}': {e}")
                scores[candidate.title] = 0.0
        return scores

    async def _evaluate(
        self,
        filtered: List[CandidateRecord],
        trend_scores: Dict[str, float]
    ) -> List[Tuple[CandidateRecord, EvaluationResult]]:
        from game_evaluator.services.evaluation import default_evaluation

        logger.info(f"Evaluating {len(filtered)} candidates")
        evaluated = []
        for index, candidate in enumerate(filtered):
            if index:
                await self._delay(self.evaluation_delay)
            try:
                evaluation = await self.evaluator.evaluate(candidate, trend_scores.get(candidate.title, 0.0))
            except Exception as e:
                logger.error(f"Evaluator raised for '{candidate.title}': {e}")
                evaluation = default_evaluation()
            evaluated.append((candidate, evaluation))
        return evaluated

    def _persist(
        self,
        evaluated: List[Tuple[CandidateRecord, EvaluationResult]],
        evaluation_date: date
    ) -> Tuple[int, int]:
        games = GameRepository(self.db)
        evaluations = EvaluationRepository(self.db)
        persisted = failed = 0

        for candidate, evaluation in evaluated:
            try:
                game_id = games.upsert_game(candidate)
                evaluations.insert_evaluation(game_id, evaluation, evaluation_date, candidate.record_kind)
                self.db.commit()
                persisted += 1
            except Exception as e:
                self.db.rollback()
                failed += 1
                persistence_failures_total.inc()
                logger.error(f"Error saving '{candidate.title}': {e}")

        logger.info(f"Persisted {persisted} evaluations ({failed} failed)")
        return persisted, failed

    def _rank(self, evaluation_date: date) -> Tuple[Dict[str, List[RankingRow]], Dict[str, Any]]:
        ranking = RankingService(self.db)
        rankings = {
            GameType.CONSUMER.value: ranking.rank(
                evaluation_date, GameType.CONSUMER, self.settings.RANKING_LIMIT_BY_TYPE
            ),
            GameType.SOCIAL.value: ranking.rank(
                evaluation_date, GameType.SOCIAL, self.settings.RANKING_LIMIT_BY_TYPE
            ),
            "all": ranking.rank(evaluation_date, None, self.settings.RANKING_LIMIT_ALL),
        }
        return rankings, ranking.stats(evaluation_date)

    async def _notify(self, result: PipelineResult) -> None:
        date_text = result.evaluation_date.isoformat()
        for game_type in (GameType.CONSUMER.value, GameType.SOCIAL.value):
            rows = result.rankings.get(game_type) or []
            if not rows:
                continue
            try:
                await self.notifier.send_ranking(rows, date_text, game_type)
            except Exception as e:
                logger.error(f"{game_type} ranking notification failed: {e}")
            await self._delay(self.notification_delay)

        try:
            await self.notifier.send_completion(result.stats)
        except Exception as e:
            logger.error(f"Completion notification failed: {e}")

    async def _close_owned(self) -> None:
        for resource in self._owned:
            try:
                await resource.close()
            except Exception as e:
                logger.debug(f"Error closing {type(resource).__name__}: {e}")
        if self.owns_session:
            self.db.close()


def create_pipeline() -> EvaluationPipeline:
    """Production pipeline with its own database session."""
    from game_evaluator.core.database import SessionLocal

    return EvaluationPipeline(SessionLocal(), owns_session=True)
