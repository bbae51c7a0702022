"""Exception types shared across CRUDForge.

Only ``ConfigurationError`` is fatal at boot. The request-time errors are
typed outcomes that the HTTP layer maps to distinct status codes.
"""


class CrudForgeError(Exception):
    """Base exception for CRUDForge errors."""

    pass


class ConfigurationError(CrudForgeError):
    """Raised when metadata or settings are unusable (aborts startup)."""

    pass


class UnknownModelError(CrudForgeError):
    """Raised when a model name is not in the schema registry."""

    def __init__(self, model_name: str, store_id: str | None = None):
        self.model_name = model_name
        self.store_id = store_id
        where = f" in store '{store_id}'" if store_id else ""
        super().__init__(f"Model '{model_name}' not found{where}")


class UnknownPathError(CrudForgeError):
    """Raised when a dotted field path does not exist on a model."""

    def __init__(self, model_name: str, path: str):
        self.model_name = model_name
        self.path = path
        super().__init__(f"Model '{model_name}' has no field path '{path}'")


class PermissionDeniedError(CrudForgeError):
    """Raised when the caller's access level does not allow an operation.

    Attributes:
        operation: The refused operation ("create", "update", "delete", ...)
        paths: The field paths that caused the denial
    """

    def __init__(self, operation: str, model_name: str, paths: list[str], message: str = ""):
        self.operation = operation
        self.model_name = model_name
        self.paths = paths
        super().__init__(
            message
            or f"Access level too low to {operation} {model_name} ({', '.join(paths)})"
        )


class NotFoundError(CrudForgeError):
    """Raised when a document, service or service function does not exist."""

    pass


class InvalidQueryError(CrudForgeError):
    """Raised when request parameters or bodies are malformed."""

    pass


class HookAbortError(CrudForgeError):
    """Raised when a hook aborts the current operation."""

    def __init__(self, model_name: str, operation: str, message: str):
        self.model_name = model_name
        self.operation = operation
        super().__init__(message)
