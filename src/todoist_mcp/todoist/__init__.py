"""Todoist upstream client and the legacy/canonical id compatibility layer."""

from .client import TodoistClient
from .errors import (
    InvalidIdentifierError,
    MoveFailedError,
    TaskNotFoundError,
    TodoistError,
    UpstreamError,
)
from .ids import IdKind, classify, is_canonical, is_legacy, require_identifier
from .move import MoveOrchestrator, MoveResult
from .normalizer import ResponseNormalizer
from .operations import TodoistOperations
from .resolver import LegacyIdResolver

__all__ = [
    "IdKind",
    "InvalidIdentifierError",
    "LegacyIdResolver",
    "MoveFailedError",
    "MoveOrchestrator",
    "MoveResult",
    "ResponseNormalizer",
    "TaskNotFoundError",
    "TodoistClient",
    "TodoistError",
    "TodoistOperations",
    "UpstreamError",
    "classify",
    "is_canonical",
    "is_legacy",
    "require_identifier",
]
