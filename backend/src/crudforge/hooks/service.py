"""Hook execution service for CRUDForge.

Runs the hooks registered for a hook point in order, merging their updates
into the request body and stopping at the first abort or response override.
"""

import logging
from typing import Any

from crudforge.hooks.registry import HookRegistry
from crudforge.hooks.types import HookContext, HookResult, Timing

logger = logging.getLogger(__name__)


class HookService:
    """Orchestrates hook execution around CRUD operations."""

    def __init__(self, registry: HookRegistry):
        self.registry = registry

    async def run(self, context: HookContext) -> HookResult | None:
        """Execute the hooks registered for the context's hook point.

        Returns:
            A HookResult carrying the abort message or response override of
            the hook that produced one, the merged updates otherwise, or None
            if no hook returned anything.
        """
        hooks = self.registry.get(context.model_name, context.operation, context.timing)
        if not hooks:
            return None

        merged_updates: dict[str, Any] = {}

        for hook_fn in hooks:
            name = getattr(hook_fn, "__name__", repr(hook_fn))
            try:
                result = await hook_fn(context)
            except Exception as e:
                if context.timing is Timing.AFTER:
                    # The store call already happened; the response still goes out
                    logger.error(
                        "after-%s hook '%s' on %s failed: %s",
                        context.operation.value,
                        name,
                        context.model_name,
                        e,
                    )
                    continue
                return HookResult(abort=f"Hook '{name}' failed: {e}")

            if result is None:
                continue

            if result.abort or result.response is not None:
                return result

            # Merge updates into the request body (compounding)
            if result.update:
                if context.body is not None:
                    context.body.update(result.update)
                merged_updates.update(result.update)

        if merged_updates:
            return HookResult(update=merged_updates)

        return None
