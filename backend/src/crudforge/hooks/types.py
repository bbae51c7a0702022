"""Hook system types for CRUDForge.

Defines the core data structures for model-scoped route hooks:
- Operation / Timing: the two halves of a hook point
- HookContext: runtime state passed to hook functions
- HookResult: return value from hook functions
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Operation(Enum):
    """CRUD operation a hook is attached to."""

    CREATE = "C"
    READ = "R"
    UPDATE = "U"
    DELETE = "D"


class Timing(Enum):
    """Whether a hook runs before or after the store call."""

    BEFORE = "before"
    AFTER = "after"


@dataclass
class HookContext:
    """Runtime context passed to every hook function.

    Attributes:
        model_name: Name of the model being operated on
        operation: The current operation
        timing: Whether the hook runs before or after the store call
        access_level: The caller's access level
        params: Path and query parameters of the request
        body: Request body (create/update), already stripped of denied fields
        result: Store result (after hooks only): documents, saved document,
            or deletion outcome
    """

    model_name: str
    operation: Operation
    timing: Timing
    access_level: int = 0
    params: dict[str, Any] = field(default_factory=dict)
    body: dict[str, Any] | None = None
    result: Any = None


@dataclass
class HookResult:
    """Return value from hook functions.

    Attributes:
        update: Fields to merge into the request body (before create/update)
        abort: Error message to stop the operation
        response: Payload to send instead of the default response
    """

    update: dict[str, Any] | None = None
    abort: str | None = None
    response: Any = None
