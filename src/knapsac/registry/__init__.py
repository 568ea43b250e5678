"""knapsac registry: the dependency graph engine and its persistence.

Usage::

    from knapsac.registry import JsonFileStore, Registry, StandaloneEntry

    registry = Registry.load(JsonFileStore("/home/me/knapsac_registry.json"))
    registry.add_dependency(StandaloneEntry("a"), "b", dependency)
"""

from __future__ import annotations

from knapsac.registry.registry import Registry
from knapsac.registry.store import InMemoryStore, JsonFileStore, RegistryDocument, RegistryStore
from knapsac.registry.types import Entry, ExecutableEntry, PackageModuleEntry, StandaloneEntry

__all__ = [
    "Entry",
    "ExecutableEntry",
    "InMemoryStore",
    "JsonFileStore",
    "PackageModuleEntry",
    "Registry",
    "RegistryDocument",
    "RegistryStore",
    "StandaloneEntry",
]
