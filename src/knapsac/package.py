"""Packages: versioned groups of modules sharing a root directory and a compiler."""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import BaseModel, Field, model_validator

from knapsac import graph
from knapsac.compiler import Compiler, SubprocessCompiler
from knapsac.dependency import PackageDependency
from knapsac.errors import LocationNotAbsoluteError, LocationNotUnderRootError
from knapsac.module import PackageModule
from knapsac.utils.paths import is_under, require_relative
from knapsac.version import NotVersioned, SemVerIncrement, Version, increment

logger = logging.getLogger(__name__)

__all__ = ["Language", "PackagedModule", "Package", "check_module_keys"]


class Language(BaseModel):
    """How to invoke the compiler for a package's modules."""

    compiler_command_name: str
    output_option: str = "-o"


class PackagedModule(BaseModel):
    """A module together with its source path relative to the package root."""

    source: Path
    module: PackageModule


def check_module_keys(modules: dict[str, PackagedModule]) -> None:
    """Raise ValueError if a module table entry is keyed by another module's name."""
    for key, entry in modules.items():
        if key != entry.module.identifier:
            raise ValueError(f"module stored under '{key}' is named '{entry.module.identifier}'")


class Package(BaseModel):
    identifier: str
    root: Path
    language: Language
    version: Version = Field(default_factory=NotVersioned)
    remote_location: str | None = None
    modules: dict[str, PackagedModule] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_module_keys(self) -> Package:
        check_module_keys(self.modules)
        return self

    @classmethod
    def create(cls, identifier: str, root: str | Path, language: Language) -> Package:
        root = Path(root)
        if not root.is_absolute():
            raise LocationNotAbsoluteError(location=str(root))
        return cls(identifier=identifier, root=root, language=language)

    @property
    def is_registered(self) -> bool:
        """Whether the package has a remote it can be uploaded to."""
        return self.remote_location is not None

    # ----- Modules -----

    def add_module(self, relative_path: str | Path, module: PackageModule) -> None:
        source = require_relative(relative_path)
        self.modules[module.identifier] = PackagedModule(source=source, module=module)

    def get_module(self, identifier: str) -> PackageModule | None:
        entry = self.modules.get(identifier)
        return entry.module if entry is not None else None

    def has_module_id(self, identifier: str) -> bool:
        return identifier in self.modules

    def search_modules(self, identifier: str) -> list[tuple[Path, PackageModule]]:
        """All ``(source, module)`` pairs registered under ``identifier``."""
        return [
            (entry.source, entry.module)
            for module_id, entry in self.modules.items()
            if module_id == identifier
        ]

    def has_module_source(self, root: str | Path, path: str | Path) -> bool:
        """Whether ``path`` (inside ``root``) is the source of one of our modules.

        Raises:
            LocationNotUnderRootError: If ``path`` is not under ``root``.
        """
        root, path = Path(root), Path(path)
        if not is_under(path, root):
            raise LocationNotUnderRootError(location=str(path), root=str(root))
        relative = path.relative_to(root)
        return any(entry.source == relative for entry in self.modules.values())

    def source_path(self, identifier: str) -> Path:
        return self.root / self.modules[identifier].source

    def output_path(self, identifier: str) -> Path:
        return self.root / self.modules[identifier].module.output_location

    # ----- Versioning -----

    def increment_version(self, kind: SemVerIncrement) -> None:
        previous = self.version
        self.version = increment(self.version, kind)
        logger.debug("Package '%s' version %s -> %s", self.identifier, previous, self.version)

    # ----- Building -----

    def internal_edges(self) -> dict[str, set[str]]:
        """Module id -> ids of modules in this same package it depends on."""
        return {
            module_id: {
                dep.module_id
                for dep in entry.module.dependencies.values()
                if isinstance(dep, PackageDependency) and dep.package_id == self.identifier
            }
            for module_id, entry in self.modules.items()
        }

    def build_order(self) -> list[str]:
        return graph.build_order(self.internal_edges())

    def build(self, compiler: Compiler | None = None) -> None:
        """Compile every module of the package.

        Raises:
            BuildFailedError: On the first module that fails to compile.
        """
        if compiler is None:
            compiler = SubprocessCompiler()

        for module_id in self.build_order():
            compiler.compile(
                self.language,
                self.source_path(module_id),
                self.output_path(module_id),
            )
        logger.info("Built %d module(s) of package '%s'", len(self.modules), self.identifier)
