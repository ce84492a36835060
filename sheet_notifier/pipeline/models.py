"""Data models for rule run tracking and reporting."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass
class RuleRunResult:
    """
    Outcome of running a single rule.

    Attributes:
        rule_name: Name of the rule
        kind: Rule kind (date_threshold, status_match)
        channel: Channel type the rule notifies
        matched_count: Number of rows that matched
        dispatched: Whether a notification was delivered
        error: Error message if the run failed
        error_type: Exception class name if the run failed
        duration_seconds: Time spent on this rule
    """

    rule_name: str
    kind: str
    channel: str
    matched_count: int = 0
    dispatched: bool = False
    error: Optional[str] = None
    error_type: Optional[str] = None
    duration_seconds: float = 0.0

    @property
    def had_error(self) -> bool:
        return self.error is not None


@dataclass
class PipelineRunResult:
    """
    Aggregate results from running a set of rules.

    Attributes:
        run_started_at: UTC timestamp when the run began
        run_finished_at: UTC timestamp when the run completed
        rule_results: Per-rule outcomes, in configuration order
        total_duration_seconds: Total time for the entire run
        total_matched: Rows matched across all rules
        total_dispatched: Notifications delivered
        total_errors: Rules that failed
        had_errors: Whether any rule failed
        skipped: Whether the run was skipped (previous run still in progress)
    """

    run_started_at: datetime
    run_finished_at: datetime
    rule_results: List[RuleRunResult] = field(default_factory=list)
    total_duration_seconds: float = 0.0
    total_matched: int = 0
    total_dispatched: int = 0
    total_errors: int = 0
    had_errors: bool = False
    skipped: bool = False

    def __post_init__(self):
        """Compute aggregate statistics from rule results."""
        if self.rule_results:
            self.total_matched = sum(r.matched_count for r in self.rule_results)
            self.total_dispatched = sum(1 for r in self.rule_results if r.dispatched)
            self.total_errors = sum(1 for r in self.rule_results if r.had_error)
            self.had_errors = self.total_errors > 0

        if self.total_duration_seconds == 0.0:
            delta = self.run_finished_at - self.run_started_at
            self.total_duration_seconds = delta.total_seconds()
