"""knapsac - a package and module manager for compiled languages."""

from __future__ import annotations

# Core
from knapsac.registry import (
    Entry,
    ExecutableEntry,
    InMemoryStore,
    JsonFileStore,
    PackageModuleEntry,
    Registry,
    RegistryDocument,
    StandaloneEntry,
)

# Build units
from knapsac.dependency import (
    Dependency,
    PackageDependency,
    StandaloneDependency,
    StrayDependency,
)
from knapsac.module import Executable, PackageModule, StandaloneModule
from knapsac.package import Language, Package
from knapsac.manifest import PackageManifest
from knapsac.version import NotVersioned, SemVer, SemVerIncrement, increment

# Collaborators
from knapsac.compiler import Compiler, SubprocessCompiler
from knapsac.vcs import GitCli, VersionControl

# Config
from knapsac.config import Config

# Errors
from knapsac.errors import (
    BuildFailedError,
    CyclicDependencyError,
    ErrorCodes,
    KnapsacError,
    ModuleAlreadyInRegistryError,
    NoRemoteLocationError,
    NoSuchDependencyError,
    NonPackageDependencyError,
    PackageAlreadyInRegistryError,
    PackageNotFoundError,
    ReferencedUnitMissingError,
    UnitNotFoundError,
    VcsError,
)

__version__ = "0.1.0"

__all__ = [
    # Core
    "Registry",
    "RegistryDocument",
    "JsonFileStore",
    "InMemoryStore",
    "Entry",
    "ExecutableEntry",
    "StandaloneEntry",
    "PackageModuleEntry",
    # Build units
    "Dependency",
    "StrayDependency",
    "StandaloneDependency",
    "PackageDependency",
    "StandaloneModule",
    "Executable",
    "PackageModule",
    "Package",
    "Language",
    "PackageManifest",
    "NotVersioned",
    "SemVer",
    "SemVerIncrement",
    "increment",
    # Collaborators
    "Compiler",
    "SubprocessCompiler",
    "VersionControl",
    "GitCli",
    # Config
    "Config",
    # Errors
    "ErrorCodes",
    "KnapsacError",
    "CyclicDependencyError",
    "NoSuchDependencyError",
    "ModuleAlreadyInRegistryError",
    "PackageAlreadyInRegistryError",
    "ReferencedUnitMissingError",
    "UnitNotFoundError",
    "PackageNotFoundError",
    "NonPackageDependencyError",
    "NoRemoteLocationError",
    "BuildFailedError",
    "VcsError",
]
