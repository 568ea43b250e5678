"""Build units: standalone modules, executables and package modules.

Units only store their dependency edges. Whether an edge is allowed (the target
exists, no cycle is formed, packaged modules reference only packages) is decided
by the registry before it calls into a unit.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import BaseModel, Field

from knapsac.dependency import Dependency, PackageDependency, StrayDependency
from knapsac.utils.paths import require_absolute, require_directory

logger = logging.getLogger(__name__)

__all__ = ["BuildUnit", "StandaloneModule", "Executable", "PackageModule"]


class BuildUnit(BaseModel):
    """Anything that owns a set of named dependency edges."""

    dependencies: dict[str, Dependency] = Field(default_factory=dict)

    def add_dependency(self, identifier: str, dependency: Dependency) -> None:
        self.dependencies[identifier] = dependency

    def get_dependency(self, identifier: str) -> Dependency | None:
        return self.dependencies.get(identifier)

    def has_dependency(self, identifier: str) -> bool:
        return identifier in self.dependencies

    def remove_dependency(self, identifier: str, dependency: Dependency) -> bool:
        """Remove the edge only if it still equals ``dependency``.

        Returns True when an edge was removed.
        """
        current = self.dependencies.get(identifier)
        if current is None:
            return False
        if current != dependency:
            logger.warning(
                "Not removing dependency '%s': stored edge %r differs from %r",
                identifier, current, dependency,
            )
            return False
        del self.dependencies[identifier]
        return True

    def drop_references(self, targets: set[Dependency]) -> list[str]:
        """Remove every edge whose value is one of ``targets``."""
        dropped = [dep_id for dep_id, dep in self.dependencies.items() if dep in targets]
        for dep_id in dropped:
            self.remove_dependency(dep_id, self.dependencies[dep_id])
        return dropped

    def has_only_package_module_dependencies(self) -> bool:
        return all(isinstance(dep, (PackageDependency, StrayDependency)) for dep in self.dependencies.values())


class StandaloneModule(BuildUnit):
    """A module registered on its own, outside of any package."""

    identifier: str
    source_location: Path
    output_location: Path

    @classmethod
    def create(
        cls,
        identifier: str,
        source_location: str | Path,
        output_location: str | Path,
    ) -> StandaloneModule:
        """Create a module after validating its locations.

        Raises:
            LocationNotAbsoluteError: If either location is relative.
            LocationDoesNotExistError: If the output location does not exist.
            LocationNotADirectoryError: If the output location is not a directory.
        """
        return cls(
            identifier=identifier,
            source_location=require_absolute(source_location),
            output_location=require_directory(output_location),
        )

    def as_stray(self) -> StrayDependency:
        """The edge an untracked reference to this module's artifact would carry."""
        return StrayDependency(identifier=self.identifier, output_location=self.output_location)


class Executable(BuildUnit):
    """An anonymous program, keyed in the registry by its source path."""


class PackageModule(BuildUnit):
    """A module owned by a package. ``output_location`` is relative to the package root."""

    identifier: str
    output_location: Path

    @classmethod
    def from_standalone(cls, module: StandaloneModule, output_location: Path) -> PackageModule:
        return cls(
            identifier=module.identifier,
            output_location=output_location,
            dependencies=dict(module.dependencies),
        )
