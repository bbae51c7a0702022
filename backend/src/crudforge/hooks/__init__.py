"""CRUDForge model route hook system.

Provides extension points that run before and after each CRUD operation of a
model:
- before: after access checks, before the store call (can modify the body,
  can abort, can answer instead of the store)
- after: after the store call (can replace the response; failures are logged)

Usage:
    from crudforge.hooks import HookContext, HookRegistry, HookResult

    hooks = HookRegistry(["Project"])

    @hooks.hook("Project", "C", "before")
    async def default_status(ctx: HookContext) -> HookResult:
        return HookResult(update={"status": True})
"""

from crudforge.hooks.registry import HookFn, HookRegistry
from crudforge.hooks.service import HookService
from crudforge.hooks.types import HookContext, HookResult, Operation, Timing

__all__ = [
    "HookContext",
    "HookFn",
    "HookRegistry",
    "HookResult",
    "HookService",
    "Operation",
    "Timing",
]
