from game_evaluator.services.evaluation.ai_evaluator import (
    AIEvaluator,
    default_evaluation,
    clamp_score,
    normalize_response,
)

__all__ = ["AIEvaluator", "default_evaluation", "clamp_score", "normalize_response"]
