"""Persistence of the registry document."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel, Field, ValidationError, model_validator

from knapsac.errors import (
    InvalidRegistryError,
    RegistryPathNotAbsoluteError,
    RegistryPathNotFileError,
    RegistryPathNotJSONError,
)
from knapsac.dependency import PackageDependency, StandaloneDependency, describe
from knapsac.module import Executable, StandaloneModule
from knapsac.package import Package

logger = logging.getLogger(__name__)

__all__ = ["RegistryDocument", "RegistryStore", "JsonFileStore", "InMemoryStore"]


class RegistryDocument(BaseModel):
    """The whole registry as written to disk."""

    modules: dict[str, StandaloneModule] = Field(default_factory=dict)
    executables: dict[str, Executable] = Field(default_factory=dict)
    packages: dict[str, Package] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_integrity(self) -> RegistryDocument:
        """Map keys name their values and every tracked edge resolves."""
        for key, module in self.modules.items():
            if key != module.identifier:
                raise ValueError(f"module stored under '{key}' is named '{module.identifier}'")
        for key, package in self.packages.items():
            if key != package.identifier:
                raise ValueError(f"package stored under '{key}' is named '{package.identifier}'")

        sources = {module.source_location for module in self.modules.values()}
        for key in self.executables:
            if Path(key) in sources:
                raise ValueError(f"executable '{key}' shares its source with a module")
        units = [(key, m) for key, m in self.modules.items()]
        units += [(key, e) for key, e in self.executables.items()]
        units += [
            (f"{package_id}/{module_id}", packaged.module)
            for package_id, package in self.packages.items()
            for module_id, packaged in package.modules.items()
        ]
        for owner, unit in units:
            for dependency in unit.dependencies.values():
                if isinstance(dependency, StandaloneDependency):
                    resolved = dependency.source_location in sources
                elif isinstance(dependency, PackageDependency):
                    package = self.packages.get(dependency.package_id)
                    resolved = package is not None and package.has_module_id(dependency.module_id)
                else:
                    resolved = True
                if not resolved:
                    raise ValueError(f"'{owner}' has unresolved dependency {describe(dependency)}")
        return self


class RegistryStore(Protocol):
    """Protocol for where a registry document lives."""

    def validate(self) -> None: ...

    def load(self) -> RegistryDocument | None: ...

    def save(self, document: RegistryDocument) -> None: ...


class JsonFileStore:
    """Stores the registry as a single JSON file.

    Saving writes a temporary file next to the target and renames it into
    place, so readers never observe a half-written registry.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def validate(self) -> None:
        """Raise if the registry path cannot hold a registry file."""
        if not self.path.is_absolute():
            raise RegistryPathNotAbsoluteError(path=str(self.path))
        if self.path.is_dir() or not self.path.suffix:
            raise RegistryPathNotFileError(path=str(self.path))
        if self.path.suffix != ".json":
            raise RegistryPathNotJSONError(path=str(self.path))

    def load(self) -> RegistryDocument | None:
        """Return the stored document, or None when no registry file exists yet.

        Raises:
            RegistryPathNotFileError: If the path is a directory.
            InvalidRegistryError: If the file cannot be read or parsed.
        """
        if not self.path.exists():
            logger.debug("No registry at %s, starting empty", self.path)
            return None
        if self.path.is_dir():
            raise RegistryPathNotFileError(path=str(self.path))

        try:
            data = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise InvalidRegistryError(path=str(self.path), reason=str(e), cause=e) from e
        try:
            return RegistryDocument.model_validate_json(data)
        except ValidationError as e:
            raise InvalidRegistryError(path=str(self.path), reason=str(e), cause=e) from e

    def save(self, document: RegistryDocument) -> None:
        self.validate()
        contents = document.model_dump_json(indent=2)

        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(contents)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug("Saved registry to %s", self.path)


class InMemoryStore:
    """Keeps the last saved document in memory."""

    def __init__(self, document: RegistryDocument | None = None) -> None:
        self.document = document
        self.saves = 0

    def validate(self) -> None:
        """Memory can always hold a document."""

    def load(self) -> RegistryDocument | None:
        if self.document is None:
            return None
        return self.document.model_copy(deep=True)

    def save(self, document: RegistryDocument) -> None:
        self.document = document.model_copy(deep=True)
        self.saves += 1
