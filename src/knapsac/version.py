"""Package versions and increments."""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

__all__ = ["NotVersioned", "SemVer", "SemVerIncrement", "Version", "increment"]


class SemVerIncrement(str, Enum):
    """Which version component a publish bumps."""

    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"


class NotVersioned(BaseModel):
    """Initial state of every package, before its first publish."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["not_versioned"] = "not_versioned"

    def __str__(self) -> str:
        return "not_versioned"


class SemVer(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["semver"] = "semver"
    major: int = Field(ge=0)
    minor: int = Field(ge=0)
    patch: int = Field(ge=0)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


Version = Annotated[Union[NotVersioned, SemVer], Field(discriminator="kind")]


def increment(current: NotVersioned | SemVer, kind: SemVerIncrement) -> SemVer:
    """Return the version after bumping ``kind``.

    The first bump of an unversioned package yields 1.0.0, 0.1.0 or 0.0.1.
    Afterwards only the targeted component grows by one; the other components
    keep their values, so 1.1.1 bumped by MAJOR is 2.1.1.
    """
    kind = SemVerIncrement(kind)
    if isinstance(current, NotVersioned):
        if kind is SemVerIncrement.MAJOR:
            return SemVer(major=1, minor=0, patch=0)
        if kind is SemVerIncrement.MINOR:
            return SemVer(major=0, minor=1, patch=0)
        return SemVer(major=0, minor=0, patch=1)

    if kind is SemVerIncrement.MAJOR:
        return current.model_copy(update={"major": current.major + 1})
    if kind is SemVerIncrement.MINOR:
        return current.model_copy(update={"minor": current.minor + 1})
    return current.model_copy(update={"patch": current.patch + 1})
