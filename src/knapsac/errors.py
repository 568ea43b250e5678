"""Error hierarchy for knapsac."""

from __future__ import annotations

from typing import Any

__all__ = [
    "KnapsacError",
    "ConfigNotFoundError",
    "ConfigError",
    "InvalidLocationError",
    "LocationNotAbsoluteError",
    "LocationNotRelativeError",
    "LocationDoesNotExistError",
    "LocationNotADirectoryError",
    "LocationNotUnderRootError",
    "CyclicDependencyError",
    "NoSuchDependencyError",
    "ModuleAlreadyInRegistryError",
    "PackageAlreadyInRegistryError",
    "ReferencedUnitMissingError",
    "UnitNotFoundError",
    "PackageNotFoundError",
    "NonPackageDependencyError",
    "RegistryPathNotAbsoluteError",
    "RegistryPathNotJSONError",
    "RegistryPathNotFileError",
    "InvalidRegistryError",
    "InvalidManifestError",
    "BuildFailedError",
    "VcsError",
    "NotARepositoryError",
    "NoRemoteLocationError",
    "DownloadFailedError",
    "ErrorCodes",
]


class KnapsacError(Exception):
    """Base error for all knapsac errors."""

    def __init__(
        self,
        code: str,
        message: str,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details: dict[str, Any] = details or {}
        self.cause = cause

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


# === Configuration ===


class ConfigNotFoundError(KnapsacError):
    """Raised when a configuration file cannot be found."""

    def __init__(self, config_path: str, **kwargs: Any) -> None:
        super().__init__(
            code="CONFIG_NOT_FOUND",
            message=f"Configuration file not found: {config_path}",
            details={"config_path": config_path},
            **kwargs,
        )


class ConfigError(KnapsacError):
    """Raised when configuration is invalid."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        super().__init__(code="CONFIG_INVALID", message=message, **kwargs)


# === Validation ===


class InvalidLocationError(KnapsacError):
    """Base for errors about a filesystem location handed in by a caller."""

    def __init__(self, code: str, location: str, reason: str, **kwargs: Any) -> None:
        super().__init__(
            code=code,
            message=f"Invalid location '{location}': {reason}",
            details={"location": location, "reason": reason},
            **kwargs,
        )

    @property
    def location(self) -> str:
        return self.details["location"]


class LocationNotAbsoluteError(InvalidLocationError):
    """Raised when an absolute path was required."""

    def __init__(self, location: str, **kwargs: Any) -> None:
        super().__init__("LOCATION_NOT_ABSOLUTE", location, "path is not absolute", **kwargs)


class LocationNotRelativeError(InvalidLocationError):
    """Raised when a relative path was required."""

    def __init__(self, location: str, **kwargs: Any) -> None:
        super().__init__("LOCATION_NOT_RELATIVE", location, "path is not relative", **kwargs)


class LocationDoesNotExistError(InvalidLocationError):
    """Raised when a path does not exist on disk."""

    def __init__(self, location: str, **kwargs: Any) -> None:
        super().__init__("LOCATION_DOES_NOT_EXIST", location, "path does not exist", **kwargs)


class LocationNotADirectoryError(InvalidLocationError):
    """Raised when a path exists but is not a directory."""

    def __init__(self, location: str, **kwargs: Any) -> None:
        super().__init__("LOCATION_NOT_A_DIRECTORY", location, "path is not a directory", **kwargs)


class LocationNotUnderRootError(InvalidLocationError):
    """Raised when a path lies outside the directory it must belong to."""

    def __init__(self, location: str, root: str, **kwargs: Any) -> None:
        super().__init__("LOCATION_NOT_UNDER_ROOT", location, f"path is not inside '{root}'", **kwargs)
        self.details["root"] = root

    @property
    def root(self) -> str:
        return self.details["root"]


# === Dependency graph ===


class CyclicDependencyError(KnapsacError):
    """Raised when adding an edge would close a cycle in the dependency graph."""

    def __init__(self, cycle_path: list[str], **kwargs: Any) -> None:
        super().__init__(
            code="CYCLIC_DEPENDENCY",
            message=f"Cyclic dependency detected: {' -> '.join(cycle_path)}",
            details={"cycle_path": cycle_path},
            **kwargs,
        )

    @property
    def cycle_path(self) -> list[str]:
        """Unit names along the cycle, first and last being the same unit."""
        return self.details["cycle_path"]


class NoSuchDependencyError(KnapsacError):
    """Raised when a unit has no dependency edge under the given identifier."""

    def __init__(self, owner: str, dependency_id: str, **kwargs: Any) -> None:
        super().__init__(
            code="NO_SUCH_DEPENDENCY",
            message=f"'{owner}' has no dependency '{dependency_id}'",
            details={"owner": owner, "dependency_id": dependency_id},
            **kwargs,
        )

    @property
    def dependency_id(self) -> str:
        return self.details["dependency_id"]


class ModuleAlreadyInRegistryError(KnapsacError):
    """Raised when a standalone module collides with a registered one."""

    def __init__(self, identifier: str, **kwargs: Any) -> None:
        super().__init__(
            code="MODULE_ALREADY_IN_REGISTRY",
            message=f"Module already in registry: {identifier}",
            details={"identifier": identifier},
            **kwargs,
        )

    @property
    def identifier(self) -> str:
        return self.details["identifier"]


class PackageAlreadyInRegistryError(KnapsacError):
    """Raised when a package identifier is already taken."""

    def __init__(self, package_id: str, **kwargs: Any) -> None:
        super().__init__(
            code="PACKAGE_ALREADY_IN_REGISTRY",
            message=f"Package already in registry: {package_id}",
            details={"package_id": package_id},
            **kwargs,
        )

    @property
    def package_id(self) -> str:
        return self.details["package_id"]


class ReferencedUnitMissingError(KnapsacError):
    """Raised when a dependency points at a unit that is not registered."""

    def __init__(self, reference: str, **kwargs: Any) -> None:
        super().__init__(
            code="REFERENCED_UNIT_MISSING",
            message=f"Referenced unit is not registered: {reference}",
            details={"reference": reference},
            **kwargs,
        )

    @property
    def reference(self) -> str:
        return self.details["reference"]


class UnitNotFoundError(KnapsacError):
    """Raised when an operation addresses a build unit that does not exist."""

    def __init__(self, unit: str, **kwargs: Any) -> None:
        super().__init__(
            code="UNIT_NOT_FOUND",
            message=f"Build unit not found: {unit}",
            details={"unit": unit},
            **kwargs,
        )

    @property
    def unit(self) -> str:
        return self.details["unit"]


class PackageNotFoundError(KnapsacError):
    """Raised when a package identifier is not registered."""

    def __init__(self, package_id: str, **kwargs: Any) -> None:
        super().__init__(
            code="PACKAGE_NOT_FOUND",
            message=f"Package not found: {package_id}",
            details={"package_id": package_id},
            **kwargs,
        )

    @property
    def package_id(self) -> str:
        return self.details["package_id"]


class NonPackageDependencyError(KnapsacError):
    """Raised when a packaged module would carry a standalone dependency."""

    def __init__(self, module_id: str, dependency_id: str, **kwargs: Any) -> None:
        super().__init__(
            code="NON_PACKAGE_DEPENDENCY",
            message=(
                f"Module '{module_id}' depends on '{dependency_id}', "
                "which is not a package module"
            ),
            details={"module_id": module_id, "dependency_id": dependency_id},
            **kwargs,
        )

    @property
    def module_id(self) -> str:
        return self.details["module_id"]

    @property
    def dependency_id(self) -> str:
        return self.details["dependency_id"]


# === Persistence ===


class RegistryPathNotAbsoluteError(KnapsacError):
    """Raised when the registry location is a relative path."""

    def __init__(self, path: str, **kwargs: Any) -> None:
        super().__init__(
            code="REGISTRY_PATH_NOT_ABSOLUTE",
            message=f"Registry path is relative: {path}",
            details={"path": path},
            **kwargs,
        )


class RegistryPathNotJSONError(KnapsacError):
    """Raised when the registry location does not point to a JSON file."""

    def __init__(self, path: str, **kwargs: Any) -> None:
        super().__init__(
            code="REGISTRY_PATH_NOT_JSON",
            message=f"Registry path does not point to a JSON file: {path}",
            details={"path": path},
            **kwargs,
        )


class RegistryPathNotFileError(KnapsacError):
    """Raised when the registry location does not point to a file."""

    def __init__(self, path: str, **kwargs: Any) -> None:
        super().__init__(
            code="REGISTRY_PATH_NOT_FILE",
            message=f"Registry path does not point to a file: {path}",
            details={"path": path},
            **kwargs,
        )


class InvalidRegistryError(KnapsacError):
    """Raised when a registry file exists but cannot be parsed."""

    def __init__(self, path: str, reason: str, **kwargs: Any) -> None:
        super().__init__(
            code="INVALID_REGISTRY",
            message=f"Invalid registry at '{path}': {reason}",
            details={"path": path, "reason": reason},
            **kwargs,
        )


class InvalidManifestError(KnapsacError):
    """Raised when a package manifest is missing or cannot be parsed."""

    def __init__(self, path: str, reason: str, **kwargs: Any) -> None:
        super().__init__(
            code="INVALID_MANIFEST",
            message=f"Invalid package manifest at '{path}': {reason}",
            details={"path": path, "reason": reason},
            **kwargs,
        )


# === Collaborators ===


class BuildFailedError(KnapsacError):
    """Raised when the compiler cannot be started or exits non-zero."""

    def __init__(
        self,
        source: str,
        reason: str,
        returncode: int | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            code="BUILD_FAILED",
            message=f"Failed to build '{source}': {reason}",
            details={"source": source, "reason": reason, "returncode": returncode},
            **kwargs,
        )

    @property
    def returncode(self) -> int | None:
        return self.details["returncode"]


class VcsError(KnapsacError):
    """Raised when a version-control command fails."""

    def __init__(
        self,
        command: list[str],
        reason: str,
        returncode: int | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            code="VCS_ERROR",
            message=f"'{' '.join(command)}' failed: {reason}",
            details={"command": command, "reason": reason, "returncode": returncode},
            **kwargs,
        )

    @property
    def command(self) -> list[str]:
        return self.details["command"]


class NotARepositoryError(KnapsacError):
    """Raised when a path is not inside a version-controlled working tree."""

    def __init__(self, path: str, **kwargs: Any) -> None:
        super().__init__(
            code="NOT_A_REPOSITORY",
            message=f"Not a repository: {path}",
            details={"path": path},
            **kwargs,
        )


class NoRemoteLocationError(KnapsacError):
    """Raised when uploading a package that has no remote and none was given."""

    def __init__(self, package_id: str, **kwargs: Any) -> None:
        super().__init__(
            code="NO_REMOTE_LOCATION",
            message=f"Package '{package_id}' has no remote location",
            details={"package_id": package_id},
            **kwargs,
        )


class DownloadFailedError(KnapsacError):
    """Raised when a package repository cannot be cloned."""

    def __init__(self, url: str, reason: str, **kwargs: Any) -> None:
        super().__init__(
            code="DOWNLOAD_FAILED",
            message=f"Failed to download '{url}': {reason}",
            details={"url": url, "reason": reason},
            **kwargs,
        )


class ErrorCodes:
    """All knapsac error codes as constants.

    Example:
        if error.code == ErrorCodes.CYCLIC_DEPENDENCY:
            report_cycle(error.cycle_path)
    """

    CONFIG_NOT_FOUND = "CONFIG_NOT_FOUND"
    CONFIG_INVALID = "CONFIG_INVALID"
    LOCATION_NOT_ABSOLUTE = "LOCATION_NOT_ABSOLUTE"
    LOCATION_NOT_RELATIVE = "LOCATION_NOT_RELATIVE"
    LOCATION_DOES_NOT_EXIST = "LOCATION_DOES_NOT_EXIST"
    LOCATION_NOT_A_DIRECTORY = "LOCATION_NOT_A_DIRECTORY"
    LOCATION_NOT_UNDER_ROOT = "LOCATION_NOT_UNDER_ROOT"
    CYCLIC_DEPENDENCY = "CYCLIC_DEPENDENCY"
    NO_SUCH_DEPENDENCY = "NO_SUCH_DEPENDENCY"
    MODULE_ALREADY_IN_REGISTRY = "MODULE_ALREADY_IN_REGISTRY"
    PACKAGE_ALREADY_IN_REGISTRY = "PACKAGE_ALREADY_IN_REGISTRY"
    REFERENCED_UNIT_MISSING = "REFERENCED_UNIT_MISSING"
    UNIT_NOT_FOUND = "UNIT_NOT_FOUND"
    PACKAGE_NOT_FOUND = "PACKAGE_NOT_FOUND"
    NON_PACKAGE_DEPENDENCY = "NON_PACKAGE_DEPENDENCY"
    REGISTRY_PATH_NOT_ABSOLUTE = "REGISTRY_PATH_NOT_ABSOLUTE"
    REGISTRY_PATH_NOT_JSON = "REGISTRY_PATH_NOT_JSON"
    REGISTRY_PATH_NOT_FILE = "REGISTRY_PATH_NOT_FILE"
    INVALID_REGISTRY = "INVALID_REGISTRY"
    INVALID_MANIFEST = "INVALID_MANIFEST"
    BUILD_FAILED = "BUILD_FAILED"
    VCS_ERROR = "VCS_ERROR"
    NOT_A_REPOSITORY = "NOT_A_REPOSITORY"
    NO_REMOTE_LOCATION = "NO_REMOTE_LOCATION"
    DOWNLOAD_FAILED = "DOWNLOAD_FAILED"

    def __setattr__(self, name: str, value: object) -> None:
        raise AttributeError("ErrorCodes is immutable")
