"""Tests for the knapsac error hierarchy."""

from __future__ import annotations

import pytest

from knapsac import errors
from knapsac.errors import (
    BuildFailedError,
    CyclicDependencyError,
    DownloadFailedError,
    ErrorCodes,
    KnapsacError,
    LocationNotAbsoluteError,
    LocationNotUnderRootError,
    InvalidLocationError,
    NonPackageDependencyError,
    VcsError,
)


class TestKnapsacError:
    def test_str_includes_code(self) -> None:
        """String form is ``[CODE] message``."""
        err = KnapsacError(code="SOMETHING", message="went wrong")
        assert str(err) == "[SOMETHING] went wrong"

    def test_defaults(self) -> None:
        """Details default to empty and cause to None."""
        err = KnapsacError(code="X", message="m")
        assert err.details == {}
        assert err.cause is None

    def test_cause(self) -> None:
        """The cause keyword is kept on the error."""
        cause = OSError("disk")
        err = BuildFailedError(source="/a.sac", reason="disk", cause=cause)
        assert err.cause is cause


class TestCyclicDependencyError:
    def test_code(self) -> None:
        """CyclicDependencyError carries its code."""
        assert CyclicDependencyError(cycle_path=["a", "b", "a"]).code == ErrorCodes.CYCLIC_DEPENDENCY

    def test_cycle_path(self) -> None:
        """Cycle path is exposed as property and in details."""
        err = CyclicDependencyError(cycle_path=["a", "b", "c", "a"])
        assert err.cycle_path == ["a", "b", "c", "a"]
        assert err.details["cycle_path"] == ["a", "b", "c", "a"]

    def test_message(self) -> None:
        """Message renders the cycle with arrows."""
        assert "a -> b -> a" in str(CyclicDependencyError(cycle_path=["a", "b", "a"]))


class TestDetails:
    def test_location_errors(self) -> None:
        """Location errors share the InvalidLocationError base."""
        err = LocationNotAbsoluteError(location="rel/path")
        assert isinstance(err, InvalidLocationError)
        assert err.location == "rel/path"
        assert err.code == ErrorCodes.LOCATION_NOT_ABSOLUTE

    def test_location_not_under_root(self) -> None:
        """Outside-root error keeps the root in its details."""
        err = LocationNotUnderRootError(location="/other/a.sac", root="/pkg")
        assert isinstance(err, InvalidLocationError)
        assert err.root == "/pkg"
        assert err.code == ErrorCodes.LOCATION_NOT_UNDER_ROOT
        assert "/pkg" in str(err)

    def test_non_package_dependency(self) -> None:
        """Offending module and edge names are exposed."""
        err = NonPackageDependencyError(module_id="P/a", dependency_id="b")
        assert err.module_id == "P/a"
        assert err.dependency_id == "b"

    def test_build_failed_returncode(self) -> None:
        """Build failure keeps the compiler return code."""
        assert BuildFailedError(source="/a.sac", reason="x", returncode=2).returncode == 2

    def test_vcs_command(self) -> None:
        """VcsError keeps the command and shows it in the message."""
        err = VcsError(command=["git", "push"], reason="rejected", returncode=1)
        assert err.command == ["git", "push"]
        assert "git push" in str(err)

    def test_download_failed(self) -> None:
        """Download failure keeps the URL."""
        err = DownloadFailedError(url="https://example.com/p.git", reason="404")
        assert err.details["url"] == "https://example.com/p.git"


class TestErrorCodes:
    def test_immutable(self) -> None:
        """ErrorCodes rejects assignment."""
        with pytest.raises(AttributeError):
            ErrorCodes().CYCLIC_DEPENDENCY = "OTHER"

    def test_every_error_is_exported_and_subclasses_base(self) -> None:
        """Every exported error derives from KnapsacError."""
        for name in errors.__all__:
            obj = getattr(errors, name)
            if name == "ErrorCodes":
                continue
            assert issubclass(obj, KnapsacError), name

    def test_codes_are_self_named(self) -> None:
        """Each code constant equals its own name."""
        for name, value in vars(ErrorCodes).items():
            if name.isupper():
                assert value == name
