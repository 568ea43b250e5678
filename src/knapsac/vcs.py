"""Version-control collaborator used by publish, upload and install."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Protocol, Sequence

from knapsac.errors import DownloadFailedError, NotARepositoryError, VcsError

logger = logging.getLogger(__name__)

__all__ = ["VersionControl", "GitCli"]


class VersionControl(Protocol):
    """Protocol for the repository operations packaging and distribution need."""

    def discover(self, path: Path) -> Path: ...

    def init(self, path: Path) -> Path: ...

    def clone(self, url: str, destination: Path) -> Path: ...

    def remotes(self, repository: Path) -> list[str]: ...

    def add(self, repository: Path, paths: Sequence[Path]) -> None: ...

    def commit(self, repository: Path, message: str | None = None, amend: bool = False) -> None: ...

    def tag(self, repository: Path, name: str) -> None: ...

    def add_remote(self, repository: Path, name: str, url: str) -> None: ...

    def push(self, repository: Path, remote: str, branch: str) -> None: ...


class GitCli:
    """``VersionControl`` backed by the ``git`` command line."""

    def __init__(self, command: str = "git", timeout: float | None = None) -> None:
        self._command = command
        self._timeout = timeout

    def _run(self, args: list[str], cwd: Path | None = None) -> str:
        command = [self._command, *args]
        logger.debug("Running %s (cwd=%s)", " ".join(command), cwd)
        try:
            result = subprocess.run(
                command,
                capture_output=True,
                text=True,
                cwd=str(cwd) if cwd is not None else None,
                timeout=self._timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise VcsError(command=command, reason=str(e), cause=e) from e

        if result.returncode != 0:
            raise VcsError(
                command=command,
                reason=result.stderr.strip() if result.stderr else "unknown error",
                returncode=result.returncode,
            )
        return result.stdout

    def discover(self, path: Path) -> Path:
        """Return the working-tree root containing ``path``."""
        start = path if path.is_dir() else path.parent
        try:
            out = self._run(["rev-parse", "--show-toplevel"], cwd=start)
        except VcsError as e:
            raise NotARepositoryError(path=str(path), cause=e) from e
        return Path(out.strip())

    def init(self, path: Path) -> Path:
        self._run(["init", str(path)])
        return path

    def clone(self, url: str, destination: Path) -> Path:
        try:
            self._run(["clone", url, str(destination)])
        except VcsError as e:
            raise DownloadFailedError(url=url, reason=e.details["reason"], cause=e) from e
        return destination

    def remotes(self, repository: Path) -> list[str]:
        return self._run(["remote"], cwd=repository).split()

    def add(self, repository: Path, paths: Sequence[Path]) -> None:
        if not paths:
            return
        self._run(["add", "--", *(str(p) for p in paths)], cwd=repository)

    def commit(self, repository: Path, message: str | None = None, amend: bool = False) -> None:
        args = ["commit"]
        if amend:
            args.append("--amend")
        if message is None:
            args.append("--no-edit")
        else:
            args.extend(["-m", message])
        self._run(args, cwd=repository)

    def tag(self, repository: Path, name: str) -> None:
        self._run(["tag", name], cwd=repository)

    def add_remote(self, repository: Path, name: str, url: str) -> None:
        self._run(["remote", "add", name, url], cwd=repository)

    def push(self, repository: Path, remote: str, branch: str) -> None:
        self._run(["push", "-u", remote, branch], cwd=repository)
