"""
Data models for a replication run.

Categories, failure policy, per-category statistics and the run report
produced by the orchestrator.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ResourceCategory(str, Enum):
    """The seven Media Services resource kinds, in replication order."""

    ACCOUNT_FILTERS = "account-filters"
    CONTENT_KEY_POLICIES = "content-key-policies"
    TRANSFORMS = "transforms"
    STREAMING_ENDPOINTS = "streaming-endpoints"
    ASSETS = "assets"
    STREAMING_LOCATORS = "streaming-locators"
    LIVE_EVENTS = "live-events"

    @property
    def label(self) -> str:
        """Human readable name used in progress lines."""
        return self.value.replace("-", " ")


class FailurePolicy(str, Enum):
    """What the orchestrator does after a category fails.

    FAIL_FAST: stop the run, later categories are not attempted
    CONTINUE: record the failure and move on to the next category
    """

    FAIL_FAST = "fail_fast"
    CONTINUE = "continue"


@dataclass
class ReplicationStats:
    """Counters collected by a reconciler while replicating one category."""

    source_count: int = 0
    existing: int = 0
    created: int = 0
    planned: int = 0
    child_created: int = 0
    failed: List[str] = field(default_factory=list)

    @property
    def missing(self) -> int:
        return self.source_count - self.existing

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source_count": self.source_count,
            "existing": self.existing,
            "created": self.created,
            "planned": self.planned,
            "child_created": self.child_created,
            "failed": list(self.failed),
        }


@dataclass
class StepResult:
    """Outcome of one orchestrator step."""

    index: int
    label: str
    category: ResourceCategory
    succeeded: bool
    skipped: bool = False
    attempted: bool = True
    stats: Optional[ReplicationStats] = None
    error: Optional[str] = None
    error_code: Optional[str] = None

    @property
    def status(self) -> str:
        if not self.attempted:
            return "not attempted"
        if self.skipped:
            return "skipped"
        return "succeeded" if self.succeeded else "failed"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "label": self.label,
            "category": self.category.value,
            "status": self.status,
            "stats": self.stats.to_dict() if self.stats else None,
            "error": self.error,
            "error_code": self.error_code,
        }


@dataclass
class RunReport:
    """Aggregated outcomes of a run, one entry per step."""

    total_steps: int
    results: List[StepResult] = field(default_factory=list)
    dry_run: bool = False

    @property
    def succeeded(self) -> bool:
        """True when every step ran and none failed."""
        return len(self.results) == self.total_steps and all(
            result.succeeded or result.skipped for result in self.results
        )

    @property
    def failed_steps(self) -> List[StepResult]:
        return [r for r in self.results if r.attempted and not r.succeeded and not r.skipped]

    def outcome(self, category: ResourceCategory) -> Optional[bool]:
        """Boolean outcome recorded for *category*, None if the step never ran."""
        for result in self.results:
            if result.category == category and result.attempted:
                return result.succeeded
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "succeeded": self.succeeded,
            "dry_run": self.dry_run,
            "steps": [result.to_dict() for result in self.results],
        }
