"""Path validation helpers shared by unit constructors and the registry."""

from __future__ import annotations

from pathlib import Path

from knapsac.errors import (
    LocationDoesNotExistError,
    LocationNotADirectoryError,
    LocationNotAbsoluteError,
    LocationNotRelativeError,
)

__all__ = ["require_absolute", "require_relative", "require_directory", "is_under"]


def require_absolute(path: str | Path) -> Path:
    path = Path(path)
    if not path.is_absolute():
        raise LocationNotAbsoluteError(location=str(path))
    return path


def require_relative(path: str | Path) -> Path:
    path = Path(path)
    if path.is_absolute():
        raise LocationNotRelativeError(location=str(path))
    return path


def require_directory(path: str | Path) -> Path:
    """Require an absolute path naming an existing directory."""
    path = require_absolute(path)
    if not path.exists():
        raise LocationDoesNotExistError(location=str(path))
    if not path.is_dir():
        raise LocationNotADirectoryError(location=str(path))
    return path


def is_under(path: Path, root: Path) -> bool:
    """Whether ``path`` lies inside ``root`` (purely lexical)."""
    try:
        path.relative_to(root)
    except ValueError:
        return False
    return True
