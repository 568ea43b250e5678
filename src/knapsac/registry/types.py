"""Registry types: entries addressing the build units held by a registry."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Union

__all__ = ["Entry", "ExecutableEntry", "StandaloneEntry", "PackageModuleEntry"]


@dataclass(frozen=True)
class ExecutableEntry:
    """An executable, addressed by its source path."""

    source_path: Path

    def __str__(self) -> str:
        return str(self.source_path)


@dataclass(frozen=True)
class StandaloneEntry:
    """A standalone module, addressed by its identifier."""

    identifier: str

    def __str__(self) -> str:
        return self.identifier


@dataclass(frozen=True)
class PackageModuleEntry:
    """A module owned by a package."""

    package_id: str
    module_id: str

    def __str__(self) -> str:
        return f"{self.package_id}/{self.module_id}"


Entry = Union[ExecutableEntry, StandaloneEntry, PackageModuleEntry]
