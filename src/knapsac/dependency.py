"""Dependency edges between build units.

A dependency is one of three frozen variants, discriminated by ``kind`` when
serialized:

* ``StrayDependency``: an untracked artifact outside the registry.
* ``StandaloneDependency``: a registered standalone module, found by source path.
* ``PackageDependency``: a module owned by a registered package.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

__all__ = [
    "Dependency",
    "StrayDependency",
    "StandaloneDependency",
    "PackageDependency",
    "describe",
]


class _DependencyBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    def is_package_reference(self) -> bool:
        return False


class StrayDependency(_DependencyBase):
    kind: Literal["stray"] = "stray"
    identifier: str
    output_location: Path


class StandaloneDependency(_DependencyBase):
    kind: Literal["standalone"] = "standalone"
    source_location: Path


class PackageDependency(_DependencyBase):
    kind: Literal["package"] = "package"
    package_id: str
    module_id: str

    def is_package_reference(self) -> bool:
        return True


Dependency = Annotated[
    Union[StrayDependency, StandaloneDependency, PackageDependency],
    Field(discriminator="kind"),
]


def describe(dependency: StrayDependency | StandaloneDependency | PackageDependency) -> str:
    """Human readable form used in error messages and logs."""
    if isinstance(dependency, StrayDependency):
        return f"stray:{dependency.identifier}@{dependency.output_location}"
    if isinstance(dependency, StandaloneDependency):
        return f"standalone:{dependency.source_location}"
    if isinstance(dependency, PackageDependency):
        return f"package:{dependency.package_id}/{dependency.module_id}"
    raise TypeError(f"Unknown dependency kind: {type(dependency).__name__}")
