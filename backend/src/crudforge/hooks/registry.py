"""Hook registry for CRUDForge.

Hooks are plain async callables stored in a table keyed by
``(model_name, operation, timing)``. The table is owned by whoever composes
the application; there is no process-wide registry.
"""

from collections.abc import Awaitable, Callable, Iterable

from crudforge.hooks.types import HookContext, HookResult, Operation, Timing

# Hook function signature: async (HookContext) -> HookResult | None
HookFn = Callable[[HookContext], Awaitable[HookResult | None]]

HookKey = tuple[str, Operation, Timing]


def _operation(value: Operation | str) -> Operation:
    if isinstance(value, Operation):
        return value
    try:
        return Operation(value)
    except ValueError:
        allowed = ", ".join(op.value for op in Operation)
        raise ValueError(f"Operation should be one of: {allowed}") from None


def _timing(value: Timing | str) -> Timing:
    if isinstance(value, Timing):
        return value
    try:
        return Timing(value)
    except ValueError:
        allowed = ", ".join(t.value for t in Timing)
        raise ValueError(f"Timing should be one of: {allowed}") from None


class HookRegistry:
    """Registry of hook callbacks for a known set of models.

    Example:
        hooks = HookRegistry(registry.list_models())

        @hooks.hook("Project", "C", "before")
        async def stamp_owner(ctx: HookContext) -> HookResult:
            return HookResult(update={"owner": ctx.params.get("user")})
    """

    def __init__(self, model_names: Iterable[str] = ()):
        self._models = set(model_names)
        self._hooks: dict[HookKey, list[HookFn]] = {}

    def register(
        self,
        model_name: str,
        operation: Operation | str,
        timing: Timing | str,
        hook_fn: HookFn,
    ) -> None:
        """Register a hook function for a model operation.

        Several hooks may share a key; they run in registration order.

        Raises:
            ValueError: If the model is unknown or operation/timing is invalid
        """
        if model_name not in self._models:
            raise ValueError(f"No model found with name: {model_name}")
        key = (model_name, _operation(operation), _timing(timing))
        hooks = self._hooks.setdefault(key, [])
        if hook_fn not in hooks:
            hooks.append(hook_fn)

    def hook(
        self,
        model_name: str,
        operation: Operation | str,
        timing: Timing | str,
    ) -> Callable[[HookFn], HookFn]:
        """Decorator form of ``register``."""

        def decorator(fn: HookFn) -> HookFn:
            self.register(model_name, operation, timing, fn)
            return fn

        return decorator

    def get(self, model_name: str, operation: Operation, timing: Timing) -> list[HookFn]:
        """Hooks registered for a key, empty if none."""
        return list(self._hooks.get((model_name, operation, timing), ()))

    def clear(self) -> None:
        """Clear all registrations. Primarily for testing."""
        self._hooks.clear()
