"""
Evaluation pipeline: identity, merging, orchestration and the run guard.

Import the orchestrator and runner from their modules
(``game_evaluator.services.pipeline.orchestrator`` / ``.run_guard``);
this package only re-exports the dependency-free helpers.
"""
from game_evaluator.services.pipeline.identity import IdentityKey, identify, normalize_title
from game_evaluator.services.pipeline.dedup import merge, quality_prefilter, select_trend_candidates

__all__ = [
    "IdentityKey",
    "identify",
    "normalize_title",
    "merge",
    "quality_prefilter",
    "select_trend_candidates",
]
