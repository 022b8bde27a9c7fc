"""Application services."""

from .mutations import (
    BatchCommitError,
    EnqueueResult,
    MutationResult,
    ProspectMutationService,
    TagResult,
    apply_tag_update,
)
from .prospects import ProspectQueryService

__all__ = [
    "BatchCommitError",
    "EnqueueResult",
    "MutationResult",
    "ProspectMutationService",
    "ProspectQueryService",
    "TagResult",
    "apply_tag_update",
]
