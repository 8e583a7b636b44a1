"""
AI evaluation engine.

The oracle's answer is untrusted: it is parsed as JSON, checked for the five
score keys, coerced to numbers and clamped (sub-scores to [0, 10], total to
[1, 10]). Anything that goes wrong yields the neutral default evaluation, so
evaluate() never raises and every candidate ends up with a score.
"""
import json
import math
import re
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, ValidationError

from game_evaluator.core.logging import get_logger
from game_evaluator.core.metrics import evaluations_total
from game_evaluator.models import CandidateRecord, EvaluationResult
from game_evaluator.services.evaluation.llm_client import LLMClient
from game_evaluator.services.evaluation.prompts import build_prompts

logger = get_logger(__name__)

DEFAULT_SCORE = 5.0
DEFAULT_REASONING = "評価情報が不足しているため、中間評価としました"
FALLBACK_REASONING = "評価を実施しました"

_LEADING_NUMBER = re.compile(r"^\s*[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")


class EvaluationPayload(BaseModel):
    """Oracle response shape. Score values stay raw until clamp_score."""

    model_config = ConfigDict(extra="ignore")

    trend_score: Any
    brand_score: Any
    series_score: Any
    sales_score: Any
    total_score: Any
    reasoning: Optional[Any] = None


def _to_number(value: Any) -> float:
    if isinstance(value, bool) or value is None:
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        match = _LEADING_NUMBER.match(value)
        if not match:
            return 0.0
        number = float(match.group(0))
    else:
        return 0.0
    return 0.0 if math.isnan(number) else number


def clamp_score(value: Any, minimum: float = 0.0, maximum: float = 10.0) -> float:
    """
    Coerce an oracle value to a number and clamp it.

    Non-numeric values count as 0; strings with a leading number use it.

    Examples:
        >>> clamp_score(15)
        10.0
        >>> clamp_score("7.5 points")
        7.5
        >>> clamp_score("high", 1, 10)
        1.0
    """
    return max(minimum, min(maximum, _to_number(value)))


def default_evaluation() -> EvaluationResult:
    """Neutral evaluation used whenever the oracle cannot be trusted."""
    return EvaluationResult(
        trend_score=DEFAULT_SCORE,
        brand_score=DEFAULT_SCORE,
        series_score=DEFAULT_SCORE,
        sales_score=DEFAULT_SCORE,
        total_score=DEFAULT_SCORE,
        reasoning=DEFAULT_REASONING,
        is_default=True,
    )


def normalize_response(payload: EvaluationPayload) -> EvaluationResult:
    reasoning = payload.reasoning
    return EvaluationResult(
        trend_score=clamp_score(payload.trend_score),
        brand_score=clamp_score(payload.brand_score),
        series_score=clamp_score(payload.series_score),
        sales_score=clamp_score(payload.sales_score),
        total_score=clamp_score(payload.total_score, 1.0, 10.0),
        reasoning=str(reasoning) if reasoning else FALLBACK_REASONING,
    )


def parse_response(content: str) -> Optional[EvaluationResult]:
    """
    Parse raw oracle output.

    Returns:
        Normalized result, or None for invalid JSON, non-objects and
        responses missing any score key
    """
    try:
        data = json.loads(content)
    except (TypeError, ValueError):
        return None
    if not isinstance(data, dict):
        return None

    try:
        payload = EvaluationPayload.model_validate(data)
    except ValidationError:
        return None
    return normalize_response(payload)


class AIEvaluator:
    """
    Scores candidates with an LLM oracle.

    Args:
        llm: LLMClient (or compatible object with complete_json)
    """

    def __init__(self, llm: Optional[LLMClient] = None, settings=None):
        self.llm = llm or LLMClient(settings=settings)

    async def evaluate(self, candidate: CandidateRecord, trend_score: float = 0.0) -> EvaluationResult:
        """
        Evaluate one candidate. Never raises.

        Args:
            candidate: Candidate to score
            trend_score: Resolved trend score in [0, 10]

        Returns:
            EvaluationResult; is_default=True when the oracle failed
        """
        result = await self._evaluate(candidate, trend_score)
        if result is None:
            evaluations_total.labels(outcome="default").inc()
            return default_evaluation()

        evaluations_total.labels(outcome="oracle").inc()
        logger.info(f"Evaluated '{candidate.title}': score {result.total_score}/10")
        return result

    async def _evaluate(self, candidate: CandidateRecord, trend_score: float) -> Optional[EvaluationResult]:
        if not getattr(self.llm, "configured", True):
            logger.warning(f"Scoring oracle not configured, using default for '{candidate.title}'")
            return None

        system_prompt, user_prompt = build_prompts(candidate, trend_score)
        try:
            content = await self.llm.complete_json(system_prompt, user_prompt)
        except Exception as e:
            logger.error(f"Error evaluating '{candidate.title}': {e}")
            return None

        result = parse_response(content)
        if result is None:
            logger.warning(f"Unusable oracle response for '{candidate.title}': {str(content)[:200]}")
        return result

    async def close(self) -> None:
        await self.llm.close()
