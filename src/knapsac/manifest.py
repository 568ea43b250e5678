"""The per-package ``manifest.json`` sidecar.

The manifest travels with the package repository, so it holds everything needed
to register a cloned package except where it was cloned to.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, model_validator

from knapsac.errors import InvalidManifestError
from knapsac.package import Language, Package, PackagedModule, check_module_keys
from knapsac.version import NotVersioned, Version

logger = logging.getLogger(__name__)

__all__ = ["MANIFEST_NAME", "PackageManifest"]

MANIFEST_NAME = "manifest.json"


class PackageManifest(BaseModel):
    identifier: str
    language: Language
    version: Version = Field(default_factory=NotVersioned)
    remote_location: str | None = None
    modules: dict[str, PackagedModule] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_module_keys(self) -> PackageManifest:
        check_module_keys(self.modules)
        return self

    @classmethod
    def from_package(cls, package: Package) -> PackageManifest:
        return cls(
            identifier=package.identifier,
            language=package.language,
            version=package.version,
            remote_location=package.remote_location,
            modules=package.modules,
        )

    def to_package(self, root: Path) -> Package:
        return Package(
            identifier=self.identifier,
            root=root,
            language=self.language,
            version=self.version,
            remote_location=self.remote_location,
            modules=self.modules,
        )

    @classmethod
    def load(cls, path: Path) -> PackageManifest:
        """Read a manifest.

        Raises:
            InvalidManifestError: If the file is missing or malformed.
        """
        try:
            data = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise InvalidManifestError(path=str(path), reason=str(e), cause=e) from e
        try:
            return cls.model_validate_json(data)
        except ValidationError as e:
            raise InvalidManifestError(path=str(path), reason=str(e), cause=e) from e

    def save(self, path: Path) -> None:
        path.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        logger.debug("Wrote manifest for package '%s' to %s", self.identifier, path)
