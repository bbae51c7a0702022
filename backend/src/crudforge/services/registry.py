"""Named service functions callable through the getter/runner routes."""

import importlib.util
import inspect
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from types import ModuleType
from typing import Any

from crudforge.errors import ConfigurationError

logger = logging.getLogger(__name__)

# Service function signature: async ({"params": {...}}) -> Any
ServiceFn = Callable[[dict[str, Any]], Awaitable[Any]]


class ServiceRegistry:
    """Registry of services, each a named group of async functions.

    Services are usually loaded from a directory where every ``<name>.py``
    module becomes service ``<name>`` and its public coroutine functions
    become callable functions.
    """

    def __init__(self) -> None:
        self._services: dict[str, dict[str, ServiceFn]] = {}

    def register(self, service: str, name: str, fn: ServiceFn) -> None:
        if not inspect.iscoroutinefunction(fn):
            raise ValueError(f"Service function '{service}.{name}' must be async")
        self._services.setdefault(service, {})[name] = fn

    def register_module(self, service: str, module: ModuleType) -> None:
        """Register every public coroutine function defined in ``module``."""
        for name, fn in inspect.getmembers(module, inspect.iscoroutinefunction):
            if name.startswith("_") or fn.__module__ != module.__name__:
                continue
            self.register(service, name, fn)

    def load_directory(self, services_path: Path) -> None:
        """Import every ``*.py`` module of a directory as a service.

        Raises:
            ConfigurationError: If the directory is missing or a module fails to import.
        """
        if not services_path.is_dir():
            raise ConfigurationError(f"Services directory not found: {services_path}")

        for module_file in sorted(services_path.glob("*.py")):
            if module_file.name.startswith("_"):
                continue
            service = module_file.stem
            spec = importlib.util.spec_from_file_location(f"crudforge_services.{service}", module_file)
            if spec is None or spec.loader is None:
                raise ConfigurationError(f"Cannot load service module {module_file}")
            module = importlib.util.module_from_spec(spec)
            try:
                spec.loader.exec_module(module)
            except Exception as e:
                raise ConfigurationError(f"Service module {module_file} failed to import: {e}") from e
            self.register_module(service, module)
            logger.info("Loaded service '%s' (%d function(s))", service, len(self.list_functions(service)))

    def get(self, service: str, name: str) -> ServiceFn | None:
        return self._services.get(service, {}).get(name)

    def list_services(self) -> list[str]:
        return sorted(self._services)

    def list_functions(self, service: str) -> list[str]:
        return sorted(self._services.get(service, {}))
