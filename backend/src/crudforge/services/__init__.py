"""Service functions exposed through the getter/runner routes."""

from crudforge.services.registry import ServiceFn, ServiceRegistry

__all__ = ["ServiceFn", "ServiceRegistry"]
