from .replication_models import (
    FailurePolicy,
    ReplicationStats,
    ResourceCategory,
    RunReport,
    StepResult,
)

__all__ = [
    "FailurePolicy",
    "ReplicationStats",
    "ResourceCategory",
    "RunReport",
    "StepResult",
]
