"""
Configurable site adapter registry and factory.
"""

from __future__ import annotations

import importlib
from collections.abc import Mapping

from dealer_portal.scraping.adapters import DNavPortalAdapter, MSIB2BPortalAdapter, SiteAdapter
from dealer_portal.scraping.config.models import PortalConfig
from dealer_portal.scraping.errors import ConfigError


class AdapterRegistry:
    """
    Adapter registry supporting built-ins and dynamic import paths.
    """

    def __init__(self, registrations: Mapping[str, type[SiteAdapter]] | None = None) -> None:
        builtins: dict[str, type[SiteAdapter]] = {
            "dnav": DNavPortalAdapter,
            "msi_b2b": MSIB2BPortalAdapter,
        }
        if registrations:
            builtins.update(registrations)
        self._registrations = builtins

    def register(self, *, adapter_type: str, adapter_class: type[SiteAdapter]) -> None:
        self._registrations[adapter_type.strip().lower()] = adapter_class

    def create_adapter(self, *, portal: PortalConfig) -> SiteAdapter:
        adapter_class = self._resolve_adapter_class(portal)
        return adapter_class(portal=portal)

    def _resolve_adapter_class(self, portal: PortalConfig) -> type[SiteAdapter]:
        if portal.adapter_class:
            return self._load_dynamic_class(portal.adapter_class, portal=portal.name)

        resolved = self._registrations.get(portal.adapter_type)
        if resolved is None:
            allowed = ", ".join(sorted(self._registrations.keys()))
            raise ConfigError(
                f"Unknown adapter_type='{portal.adapter_type}'. Allowed types: {allowed}.",
                portal=portal.name,
                stage="config",
            )
        return resolved

    @staticmethod
    def _load_dynamic_class(path: str, *, portal: str) -> type[SiteAdapter]:
        if ":" not in path:
            raise ConfigError(
                f"Invalid adapter_class '{path}'. Use 'module.path:ClassName'.",
                portal=portal,
                stage="config",
            )

        module_path, class_name = path.split(":", 1)
        try:
            module = importlib.import_module(module_path)
        except ImportError as exc:
            raise ConfigError(f"Unable to import adapter module '{module_path}': {exc}", portal=portal, stage="config") from exc
        loaded = getattr(module, class_name, None)
        if loaded is None:
            raise ConfigError(f"Unable to resolve adapter class '{path}'.", portal=portal, stage="config")
        if not isinstance(loaded, type) or not issubclass(loaded, SiteAdapter):
            raise ConfigError(f"Class '{path}' must inherit from SiteAdapter.", portal=portal, stage="config")
        return loaded
