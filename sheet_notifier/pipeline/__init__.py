"""Rule run orchestration: read sheet columns, match rows, dispatch notifications."""

from .models import PipelineRunResult, RuleRunResult
from .runner import RuleRunner

__all__ = [
    "RuleRunner",
    "PipelineRunResult",
    "RuleRunResult",
]
