"""Shared test fixtures for the knapsac test suite."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Sequence

import pytest

from knapsac.config import Config
from knapsac.errors import BuildFailedError, NotARepositoryError, VcsError
from knapsac.module import StandaloneModule
from knapsac.package import Language
from knapsac.registry import InMemoryStore, Registry


# === Collaborator fakes ===


class RecordingCompiler:
    """Compiler that records invocations instead of running anything."""

    def __init__(self, fail_on: set[str] | None = None) -> None:
        self.calls: list[tuple[str, Path, Path]] = []
        self.fail_on = fail_on or set()

    def compile(self, language: Language, source: Path, output: Path) -> None:
        self.calls.append((language.compiler_command_name, source, output))
        if source.name in self.fail_on:
            raise BuildFailedError(source=str(source), reason="boom", returncode=1)


class FakeVcs:
    """In-memory stand-in for git that records every call."""

    def __init__(self) -> None:
        self.repositories: set[Path] = set()
        self.remote_names: dict[Path, list[str]] = {}
        self.calls: list[tuple[Any, ...]] = []
        self.fail_on: set[str] = set()
        self.clone_sources: dict[str, Callable[[Path], None]] = {}

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, *args))
        if name in self.fail_on:
            raise VcsError(command=["git", name], reason="simulated failure", returncode=1)

    def call_names(self) -> list[str]:
        return [call[0] for call in self.calls]

    def discover(self, path: Path) -> Path:
        for repo in self.repositories:
            if path == repo or repo in path.parents:
                return repo
        raise NotARepositoryError(path=str(path))

    def init(self, path: Path) -> Path:
        self._record("init", path)
        self.repositories.add(path)
        return path

    def clone(self, url: str, destination: Path) -> Path:
        self._record("clone", url, destination)
        destination.mkdir(parents=True, exist_ok=True)
        populate = self.clone_sources.get(url)
        if populate is not None:
            populate(destination)
        self.repositories.add(destination)
        return destination

    def remotes(self, repository: Path) -> list[str]:
        return list(self.remote_names.get(repository, []))

    def add(self, repository: Path, paths: Sequence[Path]) -> None:
        self._record("add", repository, list(paths))

    def commit(self, repository: Path, message: str | None = None, amend: bool = False) -> None:
        self._record("commit", repository, message, amend)

    def tag(self, repository: Path, name: str) -> None:
        self._record("tag", repository, name)

    def add_remote(self, repository: Path, name: str, url: str) -> None:
        self._record("add_remote", repository, name, url)
        self.remote_names.setdefault(repository, []).append(name)

    def push(self, repository: Path, remote: str, branch: str) -> None:
        self._record("push", repository, remote, branch)


# === Fixtures ===


@pytest.fixture
def compiler() -> RecordingCompiler:
    return RecordingCompiler()


@pytest.fixture
def vcs() -> FakeVcs:
    return FakeVcs()


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def registry(store: InMemoryStore, compiler: RecordingCompiler, vcs: FakeVcs) -> Registry:
    """Empty registry backed by an in-memory store and fake collaborators."""
    return Registry(store=store, config=Config(), compiler=compiler, vcs=vcs)


@pytest.fixture
def language() -> Language:
    return Language(compiler_command_name="sac2c", output_option="-o")


@pytest.fixture
def make_module(tmp_path: Path) -> Callable[..., StandaloneModule]:
    """Factory creating a standalone module with a real output directory.

    Sources default to ``<tmp>/src/<identifier>.sac``.
    """

    def factory(identifier: str, source: Path | None = None) -> StandaloneModule:
        output = tmp_path / "out" / identifier
        output.mkdir(parents=True, exist_ok=True)
        if source is None:
            source = tmp_path / "src" / f"{identifier}.sac"
        return StandaloneModule.create(identifier, source, output)

    return factory
