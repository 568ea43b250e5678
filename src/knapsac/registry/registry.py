"""The registry: the dependency graph of all build units known to knapsac."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator, Union

from knapsac import graph
from knapsac.compiler import Compiler, SubprocessCompiler
from knapsac.config import Config
from knapsac.dependency import (
    Dependency,
    PackageDependency,
    StandaloneDependency,
    StrayDependency,
    describe,
)
from knapsac.errors import (
    CyclicDependencyError,
    ModuleAlreadyInRegistryError,
    NonPackageDependencyError,
    NoRemoteLocationError,
    NoSuchDependencyError,
    NotARepositoryError,
    PackageAlreadyInRegistryError,
    PackageNotFoundError,
    ReferencedUnitMissingError,
    UnitNotFoundError,
)
from knapsac.manifest import PackageManifest
from knapsac.module import BuildUnit, Executable, PackageModule, StandaloneModule
from knapsac.package import Language, Package
from knapsac.registry.store import InMemoryStore, JsonFileStore, RegistryDocument, RegistryStore
from knapsac.registry.types import (
    Entry,
    ExecutableEntry,
    PackageModuleEntry,
    StandaloneEntry,
)
from knapsac.utils.paths import is_under, require_absolute, require_directory
from knapsac.vcs import GitCli, VersionControl
from knapsac.version import SemVer, SemVerIncrement

logger = logging.getLogger(__name__)

__all__ = ["Registry"]

# Graph nodes: the units that can be the target of a dependency edge.
_Node = Union[StandaloneEntry, PackageModuleEntry]


class Registry:
    """Modules, executables and packages plus the dependency edges between them.

    Every mutator validates first and only then changes state, so a rejected
    call leaves the registry untouched. Successful mutations are written through
    to the store immediately.

    Invariants kept after each mutation:
        * identifiers are unique per namespace (registry modules, each package);
        * every standalone or package edge resolves to a registered unit;
        * standalone and package edges form no cycle;
        * packaged modules carry only package and stray edges.

    Every mutating call validates the store location before touching the graph,
    so a store that cannot be written leaves the registry unchanged.
    """

    def __init__(
        self,
        store: RegistryStore | None = None,
        config: Config | None = None,
        compiler: Compiler | None = None,
        vcs: VersionControl | None = None,
    ) -> None:
        """Initialize an empty Registry.

        Args:
            store: Where the registry is persisted. Defaults to an in-memory store.
            config: Settings for the collaborators. Defaults to ``Config.default()``.
            compiler: Compiler used to build packages.
            vcs: Version control used by packaging, publish, upload and install.
        """
        self._config = config or Config.default()
        self._store: RegistryStore = store if store is not None else InMemoryStore()
        self._compiler: Compiler = compiler or SubprocessCompiler(timeout=self._config.get("compiler.timeout"))
        self._vcs: VersionControl = vcs or GitCli(command=self._config.get("vcs.command", "git"))

        self._modules: dict[str, StandaloneModule] = {}
        self._executables: dict[Path, Executable] = {}
        self._packages: dict[str, Package] = {}

    @classmethod
    def load(cls, store: RegistryStore | None = None, **kwargs) -> Registry:
        """Build a registry from whatever ``store`` holds; an empty store gives an empty registry.

        Raises:
            InvalidRegistryError: If the stored registry is malformed.
        """
        registry = cls(store, **kwargs)
        document = registry._store.load()
        if document is not None:
            registry._restore(document)
        return registry

    @classmethod
    def open(cls, config: Config | None = None, **kwargs) -> Registry:
        """Load the registry file named by ``config`` (``registry.path``)."""
        config = config or Config.default()
        return cls.load(JsonFileStore(config.registry_path), config=config, **kwargs)

    # ----- Persistence -----

    def to_document(self) -> RegistryDocument:
        return RegistryDocument(
            modules=self._modules,
            executables={str(path): exe for path, exe in self._executables.items()},
            packages=self._packages,
        )

    def _restore(self, document: RegistryDocument) -> None:
        self._modules = dict(document.modules)
        self._executables = {Path(path): exe for path, exe in document.executables.items()}
        self._packages = dict(document.packages)

    def _save(self) -> None:
        self._store.save(self.to_document())

    def _write_manifest(self, package: Package) -> None:
        if not package.root.is_dir():
            logger.warning("Package root %s is missing, manifest not written", package.root)
            return
        PackageManifest.from_package(package).save(self._manifest_path(package))

    def _manifest_path(self, package: Package) -> Path:
        return package.root / self._config.get("package.manifest", "manifest.json")

    # ----- Queries -----

    def get_module(self, identifier: str) -> StandaloneModule | None:
        return self._modules.get(identifier)

    def get_module_by_source(self, source_path: str | Path) -> StandaloneModule | None:
        source_path = Path(source_path)
        for module in self._modules.values():
            if module.source_location == source_path:
                return module
        return None

    def get_executable(self, source_path: str | Path) -> Executable | None:
        return self._executables.get(Path(source_path))

    def get_package(self, package_id: str) -> Package | None:
        return self._packages.get(package_id)

    def get_package_module(self, package_id: str, module_id: str) -> PackageModule | None:
        package = self._packages.get(package_id)
        return package.get_module(module_id) if package is not None else None

    def has_module_id(self, identifier: str) -> bool:
        return identifier in self._modules

    def has_module_source(self, source_path: str | Path) -> bool:
        return self.get_module_by_source(source_path) is not None

    def has_executable_source(self, source_path: str | Path) -> bool:
        return Path(source_path) in self._executables

    def has_package(self, package_id: str) -> bool:
        return package_id in self._packages

    def get_item(self, entry: Entry) -> BuildUnit | None:
        """Return the unit ``entry`` addresses, or None."""
        if isinstance(entry, ExecutableEntry):
            return self._executables.get(Path(entry.source_path))
        if isinstance(entry, StandaloneEntry):
            return self._modules.get(entry.identifier)
        if isinstance(entry, PackageModuleEntry):
            return self.get_package_module(entry.package_id, entry.module_id)
        raise TypeError(f"Unknown entry type: {type(entry).__name__}")

    def get_dependency(self, entry: Entry, dependency_id: str) -> Dependency | None:
        """Return the edge ``dependency_id`` of ``entry`` if it resolves."""
        unit = self.get_item(entry)
        if unit is None:
            return None
        dependency = unit.get_dependency(dependency_id)
        if dependency is None or not self.dependency_exists(dependency):
            return None
        return dependency

    def has_dependency(self, entry: Entry, dependency_id: str) -> bool:
        unit = self.get_item(entry)
        return unit is not None and unit.has_dependency(dependency_id)

    def dependency_exists(self, dependency: Dependency) -> bool:
        """Whether the unit ``dependency`` points at is registered. Stray edges always exist."""
        if isinstance(dependency, StrayDependency):
            return True
        if isinstance(dependency, StandaloneDependency):
            return self.has_module_source(dependency.source_location)
        if isinstance(dependency, PackageDependency):
            return self.get_package_module(dependency.package_id, dependency.module_id) is not None
        raise TypeError(f"Unknown dependency kind: {type(dependency).__name__}")

    def search_modules_by_source_prefix(self, prefix: str | Path) -> list[StandaloneModule]:
        prefix = Path(prefix)
        return [m for m in self._modules.values() if is_under(m.source_location, prefix)]

    def search_package_modules(self, identifier: str) -> list[tuple[str, Path, PackageModule]]:
        """Every ``(package_id, source, module)`` whose module is named ``identifier``."""
        return [
            (package_id, source, module)
            for package_id, package in sorted(self._packages.items())
            for source, module in package.search_modules(identifier)
        ]

    @property
    def module_ids(self) -> list[str]:
        return sorted(self._modules)

    @property
    def package_ids(self) -> list[str]:
        return sorted(self._packages)

    @property
    def executable_sources(self) -> list[Path]:
        return sorted(self._executables)

    @property
    def count(self) -> int:
        """Number of registered build units, package modules included."""
        return (
            len(self._modules)
            + len(self._executables)
            + sum(len(p.modules) for p in self._packages.values())
        )

    def is_empty(self) -> bool:
        return not (self._modules or self._executables or self._packages)

    # ----- Graph helpers -----

    def _iter_units(self) -> Iterator[tuple[Entry, BuildUnit]]:
        for identifier, module in self._modules.items():
            yield StandaloneEntry(identifier), module
        for path, executable in self._executables.items():
            yield ExecutableEntry(path), executable
        for package_id, package in self._packages.items():
            for module_id, packaged in package.modules.items():
                yield PackageModuleEntry(package_id, module_id), packaged.module

    def _require_unit(self, entry: Entry) -> BuildUnit:
        unit = self.get_item(entry)
        if unit is None:
            raise UnitNotFoundError(unit=str(entry))
        return unit

    def _require_package(self, package_id: str) -> Package:
        package = self._packages.get(package_id)
        if package is None:
            raise PackageNotFoundError(package_id=package_id)
        return package

    def _target_node(self, dependency: Dependency) -> _Node | None:
        """The registered unit an edge points at, or None for stray or dangling edges."""
        if isinstance(dependency, StandaloneDependency):
            module = self.get_module_by_source(dependency.source_location)
            return StandaloneEntry(module.identifier) if module is not None else None
        if isinstance(dependency, PackageDependency):
            if self.get_package_module(dependency.package_id, dependency.module_id) is None:
                return None
            return PackageModuleEntry(dependency.package_id, dependency.module_id)
        return None

    def _successors(self, node: _Node) -> Iterator[_Node]:
        unit = self.get_item(node)
        if unit is None:
            return
        for dependency in unit.dependencies.values():
            target = self._target_node(dependency)
            if target is not None:
                yield target

    def _check_acyclic(self, owner: Entry, dependency: Dependency) -> None:
        """Reject the edge ``owner -> dependency`` if ``owner`` is reachable from the target."""
        if isinstance(owner, ExecutableEntry):
            # Nothing can depend on an executable, so it is never on a cycle.
            return
        target = self._target_node(dependency)
        if target is None:
            return
        path = graph.find_path(target, owner, self._successors)
        if path is not None:
            raise CyclicDependencyError(cycle_path=[str(owner)] + [str(node) for node in path])

    def _drop_references(self, targets: set[Dependency]) -> None:
        for entry, unit in self._iter_units():
            for dependency_id in unit.drop_references(targets):
                logger.debug("Dropped dependency '%s' of %s", dependency_id, entry)

    @staticmethod
    def _rewrite_references(unit: BuildUnit, replacements: dict[Dependency, Dependency]) -> None:
        for dependency_id, dependency in list(unit.dependencies.items()):
            replacement = replacements.get(dependency)
            if replacement is not None:
                unit.add_dependency(dependency_id, replacement)

    # ----- Registration -----

    def add_module(self, module: StandaloneModule) -> None:
        """Register a standalone module.

        Raises:
            ModuleAlreadyInRegistryError: If the identifier is taken, or the source
                location belongs to another module or an executable.
            ReferencedUnitMissingError: If one of the module's edges does not resolve.
        """
        self._store.validate()
        if (
            module.identifier in self._modules
            or self.has_module_source(module.source_location)
            or module.source_location in self._executables
        ):
            raise ModuleAlreadyInRegistryError(identifier=module.identifier)
        for dependency in module.dependencies.values():
            if not self.dependency_exists(dependency):
                raise ReferencedUnitMissingError(reference=describe(dependency))

        self._modules[module.identifier] = module
        self._save()
        logger.info("Added module '%s' (%s)", module.identifier, module.source_location)

    def add_executable(self, source_path: str | Path) -> Executable:
        """Register an executable. Adding a known source again is a no-op.

        Raises:
            LocationNotAbsoluteError: If ``source_path`` is relative.
            ModuleAlreadyInRegistryError: If a standalone module has this source.
        """
        self._store.validate()
        source_path = require_absolute(source_path)
        existing = self._executables.get(source_path)
        if existing is not None:
            return existing
        module = self.get_module_by_source(source_path)
        if module is not None:
            raise ModuleAlreadyInRegistryError(identifier=module.identifier)

        executable = Executable()
        self._executables[source_path] = executable
        self._save()
        logger.info("Added executable %s", source_path)
        return executable

    def mark_as_module(
        self,
        source_path: str | Path,
        identifier: str,
        output_location: str | Path,
    ) -> StandaloneModule:
        """Turn a registered executable into a standalone module, keeping its edges.

        Raises:
            UnitNotFoundError: If no executable is registered at ``source_path``.
            ModuleAlreadyInRegistryError: If ``identifier`` or the source is taken.
        """
        self._store.validate()
        source_path = Path(source_path)
        executable = self._executables.get(source_path)
        if executable is None:
            raise UnitNotFoundError(unit=str(source_path))
        if identifier in self._modules or self.has_module_source(source_path):
            raise ModuleAlreadyInRegistryError(identifier=identifier)

        module = StandaloneModule.create(identifier, source_path, output_location)
        module.dependencies = dict(executable.dependencies)

        del self._executables[source_path]
        self._modules[identifier] = module
        self._save()
        logger.info("Marked executable %s as module '%s'", source_path, identifier)
        return module

    # ----- Dependencies -----

    def add_dependency(self, owner: Entry, dependency_id: str, dependency: Dependency) -> None:
        """Add the edge ``owner -> dependency`` under the name ``dependency_id``.

        Adding an identical edge again succeeds without changes.

        Raises:
            UnitNotFoundError: If ``owner`` is not registered.
            NonPackageDependencyError: If a package module would get a standalone edge.
            ReferencedUnitMissingError: If the target is not registered.
            CyclicDependencyError: If the edge would close a cycle.
        """
        self._store.validate()
        unit = self._require_unit(owner)
        if isinstance(owner, PackageModuleEntry) and not (
            dependency.is_package_reference() or isinstance(dependency, StrayDependency)
        ):
            raise NonPackageDependencyError(module_id=str(owner), dependency_id=dependency_id)
        if not self.dependency_exists(dependency):
            raise ReferencedUnitMissingError(reference=describe(dependency))
        self._check_acyclic(owner, dependency)

        if unit.get_dependency(dependency_id) == dependency:
            logger.debug("Dependency '%s' of %s already present", dependency_id, owner)
            return

        unit.add_dependency(dependency_id, dependency)
        self._save()
        if isinstance(owner, PackageModuleEntry):
            self._write_manifest(self._packages[owner.package_id])
        logger.info("Added dependency %s -> %s", owner, describe(dependency))

    def remove_dependency(self, owner: Entry, dependency_id: str) -> None:
        """Remove the edge named ``dependency_id`` from ``owner``.

        Raises:
            UnitNotFoundError: If ``owner`` is not registered.
            NoSuchDependencyError: If ``owner`` has no such edge.
        """
        self._store.validate()
        unit = self._require_unit(owner)
        dependency = unit.get_dependency(dependency_id)
        if dependency is None:
            raise NoSuchDependencyError(owner=str(owner), dependency_id=dependency_id)

        unit.remove_dependency(dependency_id, dependency)
        self._save()
        if isinstance(owner, PackageModuleEntry):
            self._write_manifest(self._packages[owner.package_id])
        logger.info("Removed dependency '%s' from %s", dependency_id, owner)

    # ----- Removal -----

    def remove_item(self, entry: Entry) -> None:
        """Remove the unit ``entry`` addresses, dropping every edge that pointed at it."""
        if isinstance(entry, ExecutableEntry):
            self.remove_executable(entry.source_path)
        elif isinstance(entry, StandaloneEntry):
            self.remove_module(entry.identifier)
        elif isinstance(entry, PackageModuleEntry):
            self.remove_package_module(entry.package_id, entry.module_id)
        else:
            raise TypeError(f"Unknown entry type: {type(entry).__name__}")

    def remove_executable(self, source_path: str | Path) -> None:
        self._store.validate()
        source_path = Path(source_path)
        if source_path not in self._executables:
            raise UnitNotFoundError(unit=str(source_path))

        del self._executables[source_path]
        self._save()
        logger.info("Removed executable %s", source_path)

    def remove_module(self, identifier: str) -> None:
        """Remove a standalone module and every edge referencing it."""
        self._store.validate()
        module = self._modules.get(identifier)
        if module is None:
            raise UnitNotFoundError(unit=identifier)

        del self._modules[identifier]
        self._drop_references({StandaloneDependency(source_location=module.source_location), module.as_stray()})
        self._save()
        logger.info("Removed module '%s'", identifier)

    def remove_package_module(self, package_id: str, module_id: str) -> None:
        """Remove one module of a package and every edge referencing it."""
        self._store.validate()
        package = self._require_package(package_id)
        if not package.has_module_id(module_id):
            raise UnitNotFoundError(unit=str(PackageModuleEntry(package_id, module_id)))

        del package.modules[module_id]
        self._drop_references({PackageDependency(package_id=package_id, module_id=module_id)})
        self._save()
        self._write_manifest(package)
        logger.info("Removed module '%s' from package '%s'", module_id, package_id)

    def remove_package(self, package_id: str) -> None:
        """Remove a package, its modules, and every edge referencing those modules."""
        self._store.validate()
        package = self._require_package(package_id)

        del self._packages[package_id]
        self._drop_references(
            {PackageDependency(package_id=package_id, module_id=module_id) for module_id in package.modules}
        )
        self._save()
        logger.info("Removed package '%s' (%d module(s))", package_id, len(package.modules))

    # ----- Packaging -----

    def package(self, package_id: str, root_path: str | Path, language: Language) -> Package:
        """Promote every standalone module under ``root_path`` into a new package.

        Edges elsewhere in the registry that pointed at a promoted module are
        rewritten to point at its package module. The repository at
        ``root_path`` is initialised if needed and the package is built.

        Raises:
            PackageAlreadyInRegistryError: If ``package_id`` is taken.
            NonPackageDependencyError: If a promoted module depends on a
                standalone module outside ``root_path``.
            BuildFailedError: If compiling the new package fails. The package
                stays registered.
        """
        self._store.validate()
        root = require_directory(root_path)
        if package_id in self._packages:
            raise PackageAlreadyInRegistryError(package_id=package_id)

        promoted = self.search_modules_by_source_prefix(root)
        promoted_sources = {m.source_location for m in promoted}
        for module in promoted:
            for dependency_id, dependency in module.dependencies.items():
                if isinstance(dependency, StandaloneDependency) and dependency.source_location not in promoted_sources:
                    raise NonPackageDependencyError(module_id=module.identifier, dependency_id=dependency_id)
        if not promoted:
            logger.warning("No modules under %s, creating empty package '%s'", root, package_id)

        self._ensure_repository(root)

        package = Package.create(package_id, root, language)
        replacements: dict[Dependency, Dependency] = {
            StandaloneDependency(source_location=m.source_location): PackageDependency(
                package_id=package_id, module_id=m.identifier
            )
            for m in promoted
        }
        for module in promoted:
            output_location = Path(module.identifier) / "output"
            (root / output_location).mkdir(parents=True, exist_ok=True)
            package_module = PackageModule.from_standalone(module, output_location)
            self._rewrite_references(package_module, replacements)
            package.add_module(module.source_location.relative_to(root), package_module)

        for module in promoted:
            del self._modules[module.identifier]
        for _, unit in self._iter_units():
            self._rewrite_references(unit, replacements)
        self._packages[package_id] = package

        self._save()
        self._write_manifest(package)
        logger.info("Created package '%s' from %d module(s) under %s", package_id, len(promoted), root)

        package.build(self._compiler)
        return package

    def _ensure_repository(self, root: Path) -> None:
        try:
            if self._vcs.discover(root).resolve() == root.resolve():
                return
        except NotARepositoryError:
            pass
        logger.debug("Initialising repository at %s", root)
        self._vcs.init(root)

    def build_package(self, package_id: str) -> None:
        self._require_package(package_id).build(self._compiler)

    # ----- Distribution -----

    def publish(self, package_id: str, increment: SemVerIncrement) -> SemVer:
        """Bump the package version, then commit and tag it.

        The new version is persisted before any version-control step runs, and
        is kept if one of those steps fails.

        Raises:
            PackageNotFoundError: If the package is not registered.
            NotARepositoryError, VcsError: If a version-control step fails.
        """
        self._store.validate()
        package = self._require_package(package_id)
        package.increment_version(increment)
        self._save()
        self._write_manifest(package)

        repository = self._vcs.discover(package.root)
        paths = [self._manifest_path(package)]
        for module_id in sorted(package.modules):
            paths.append(package.source_path(module_id))
            paths.append(package.output_path(module_id))
        self._vcs.add(repository, paths)
        self._vcs.commit(repository, f"updated to version: {package.version}")
        self._vcs.tag(repository, str(package.version))

        logger.info("Published package '%s' at version %s", package_id, package.version)
        return package.version

    def upload(self, package_id: str, remote_url: str | None = None) -> None:
        """Push a package to its remote, assigning ``remote_url`` if it has none.

        Raises:
            PackageNotFoundError: If the package is not registered.
            NoRemoteLocationError: If the package has no remote and none is given.
            NotARepositoryError, VcsError: If a version-control step fails.
        """
        self._store.validate()
        package = self._require_package(package_id)
        if package.remote_location is None:
            if remote_url is None:
                raise NoRemoteLocationError(package_id=package_id)
            package.remote_location = remote_url
            self._save()
            self._write_manifest(package)

        repository = self._vcs.discover(package.root)
        self._vcs.add(repository, [self._manifest_path(package)])
        self._vcs.commit(repository, amend=True)

        remote = self._config.get("vcs.remote", "origin")
        if remote not in self._vcs.remotes(repository):
            self._vcs.add_remote(repository, remote, package.remote_location)
        self._vcs.push(repository, remote, self._config.get("vcs.branch", "master"))
        logger.info("Uploaded package '%s' to %s", package_id, package.remote_location)

    def install(self, url: str, destination: str | Path) -> Package:
        """Clone a package repository and register the package it contains.

        Raises:
            DownloadFailedError: If cloning fails.
            InvalidManifestError: If the clone has no readable manifest.
            PackageAlreadyInRegistryError: If the package is already registered.
            NonPackageDependencyError: If a module carries a standalone edge.
            ReferencedUnitMissingError: If an edge points at an unknown package module.
            CyclicDependencyError: If the package's modules depend on each other in a cycle.
        """
        self._store.validate()
        destination = require_absolute(destination)
        repository = self._vcs.clone(url, destination)
        manifest = PackageManifest.load(repository / self._config.get("package.manifest", "manifest.json"))
        if manifest.identifier in self._packages:
            raise PackageAlreadyInRegistryError(package_id=manifest.identifier)

        package = manifest.to_package(repository)
        for module_id, packaged in package.modules.items():
            for dependency_id, dependency in packaged.module.dependencies.items():
                if isinstance(dependency, StandaloneDependency):
                    raise NonPackageDependencyError(module_id=module_id, dependency_id=dependency_id)
                if isinstance(dependency, PackageDependency):
                    if dependency.package_id == package.identifier:
                        known = package.has_module_id(dependency.module_id)
                    else:
                        known = self.dependency_exists(dependency)
                    if not known:
                        raise ReferencedUnitMissingError(reference=describe(dependency))
        package.build_order()

        if package.remote_location is None:
            package.remote_location = url
        self._packages[package.identifier] = package
        self._save()
        logger.info("Installed package '%s' from %s", package.identifier, url)
        return package
