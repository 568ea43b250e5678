"""Tests for promoting standalone modules into a package."""

from __future__ import annotations

from pathlib import Path

import pytest

from knapsac.dependency import PackageDependency, StandaloneDependency, StrayDependency
from knapsac.errors import (
    BuildFailedError,
    LocationDoesNotExistError,
    NonPackageDependencyError,
    PackageAlreadyInRegistryError,
    PackageNotFoundError,
)
from knapsac.manifest import PackageManifest
from knapsac.registry import PackageModuleEntry, StandaloneEntry
from knapsac.version import NotVersioned


def _dep(module) -> StandaloneDependency:
    return StandaloneDependency(source_location=module.source_location)


@pytest.fixture
def root(tmp_path: Path) -> Path:
    path = tmp_path / "pkg"
    path.mkdir()
    return path


@pytest.fixture
def modules(registry, make_module, root, tmp_path):
    """a and b under the package root (a -> b); c outside it (c -> a)."""
    a = make_module("a", source=root / "a.sac")
    b = make_module("b", source=root / "nested" / "b.sac")
    c = make_module("c", source=tmp_path / "elsewhere" / "c.sac")
    for m in (a, b, c):
        registry.add_module(m)
    registry.add_dependency(StandaloneEntry("a"), "b", _dep(b))
    registry.add_dependency(StandaloneEntry("c"), "a", _dep(a))
    return a, b, c


class TestPackage:
    def test_promotes_modules_under_root(self, registry, modules, root, language) -> None:
        """Modules under the root move into the package; others stay."""
        package = registry.package("P", root, language)

        assert registry.get_package("P") is package
        assert sorted(package.modules) == ["a", "b"]
        assert package.modules["a"].source == Path("a.sac")
        assert package.modules["b"].source == Path("nested/b.sac")
        assert package.version == NotVersioned()
        assert not registry.has_module_id("a")
        assert not registry.has_module_id("b")
        assert registry.has_module_id("c")

    def test_rewrites_internal_edges(self, registry, modules, root, language) -> None:
        """Edges between promoted modules become package edges."""
        registry.package("P", root, language)
        assert registry.get_dependency(PackageModuleEntry("P", "a"), "b") == PackageDependency(
            package_id="P", module_id="b"
        )

    def test_rewrites_edges_from_outside(self, registry, modules, root, language) -> None:
        """c pointed at standalone a; afterwards it points at P/a."""
        registry.package("P", root, language)
        assert registry.get_dependency(StandaloneEntry("c"), "a") == PackageDependency(
            package_id="P", module_id="a"
        )

    def test_package_modules_only_reference_packages(self, registry, modules, root, language) -> None:
        """Promoted modules carry no standalone edges."""
        package = registry.package("P", root, language)
        for packaged in package.modules.values():
            assert packaged.module.has_only_package_module_dependencies()

    def test_outputs_live_under_root(self, registry, modules, root, language) -> None:
        """Each module gets ``<id>/output`` under the package root."""
        package = registry.package("P", root, language)
        assert package.modules["a"].module.output_location == Path("a/output")
        assert (root / "a" / "output").is_dir()
        assert package.output_path("b") == root / "b" / "output"

    def test_builds_in_dependency_order(self, registry, modules, root, language, compiler) -> None:
        """Promotion compiles dependencies first."""
        registry.package("P", root, language)
        assert compiler.calls == [
            ("sac2c", root / "nested" / "b.sac", root / "b" / "output"),
            ("sac2c", root / "a.sac", root / "a" / "output"),
        ]

    def test_writes_manifest(self, registry, modules, root, language) -> None:
        """Promotion writes a manifest describing the package."""
        registry.package("P", root, language)
        manifest = PackageManifest.load(root / "manifest.json")
        assert manifest.identifier == "P"
        assert manifest.language == language
        assert sorted(manifest.modules) == ["a", "b"]

    def test_initialises_repository(self, registry, modules, root, language, vcs) -> None:
        """A root outside any repository gets ``git init``."""
        registry.package("P", root, language)
        assert ("init", root) in vcs.calls

    def test_existing_repository_is_reused(self, registry, modules, root, language, vcs) -> None:
        """A root that is already a repository is not re-initialised."""
        vcs.repositories.add(root)
        registry.package("P", root, language)
        assert "init" not in vcs.call_names()

    def test_stray_edges_survive(self, registry, make_module, root, language, tmp_path) -> None:
        """Stray edges are carried into the package."""
        a = make_module("a", source=root / "a.sac")
        registry.add_module(a)
        stray = StrayDependency(identifier="libm", output_location=tmp_path)
        registry.add_dependency(StandaloneEntry("a"), "libm", stray)

        registry.package("P", root, language)

        assert registry.get_dependency(PackageModuleEntry("P", "a"), "libm") == stray

    def test_empty_package(self, registry, root, language) -> None:
        """A root with no modules still creates the package."""
        package = registry.package("P", root, language)
        assert package.modules == {}
        assert registry.has_package("P")


class TestPackageRejections:
    def test_edge_to_module_outside_root(self, registry, make_module, root, language, tmp_path, store) -> None:
        """A promoted module may not keep a standalone edge leaving the package."""
        a = make_module("a", source=root / "a.sac")
        d = make_module("d", source=tmp_path / "elsewhere" / "d.sac")
        registry.add_module(a)
        registry.add_module(d)
        registry.add_dependency(StandaloneEntry("a"), "d", _dep(d))
        before = registry.to_document()
        saves = store.saves

        with pytest.raises(NonPackageDependencyError) as exc_info:
            registry.package("P", root, language)

        assert exc_info.value.module_id == "a"
        assert exc_info.value.dependency_id == "d"
        assert registry.to_document() == before
        assert store.saves == saves

    def test_duplicate_package(self, registry, root, language) -> None:
        """A taken package identifier is rejected."""
        registry.package("P", root, language)
        with pytest.raises(PackageAlreadyInRegistryError):
            registry.package("P", root, language)

    def test_missing_root(self, registry, tmp_path, language) -> None:
        """A missing root raises LocationDoesNotExistError."""
        with pytest.raises(LocationDoesNotExistError):
            registry.package("P", tmp_path / "missing", language)

    def test_build_failure_keeps_package(self, registry, store, compiler, root, make_module, language) -> None:
        """A failing build leaves the package registered and saved."""
        compiler.fail_on.add("a.sac")
        registry.add_module(make_module("a", source=root / "a.sac"))

        with pytest.raises(BuildFailedError):
            registry.package("P", root, language)

        assert registry.has_package("P")
        assert store.document is not None
        assert "P" in store.document.packages


class TestBuildPackage:
    def test_rebuild(self, registry, modules, root, language, compiler) -> None:
        """build_package compiles the package again in order."""
        registry.package("P", root, language)
        compiler.calls.clear()
        registry.build_package("P")
        assert [call[1].name for call in compiler.calls] == ["b.sac", "a.sac"]

    def test_unknown_package(self, registry) -> None:
        """Building an unknown package raises PackageNotFoundError."""
        with pytest.raises(PackageNotFoundError):
            registry.build_package("nope")
