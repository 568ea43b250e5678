"""External compiler invocation."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from knapsac.errors import BuildFailedError

if TYPE_CHECKING:
    from knapsac.package import Language

logger = logging.getLogger(__name__)

__all__ = ["Compiler", "SubprocessCompiler"]


class Compiler(Protocol):
    """Protocol for turning one module source into its output."""

    def compile(self, language: Language, source: Path, output: Path) -> None: ...


class SubprocessCompiler:
    """Runs ``<compiler> <source> <output option> <output>`` once per module."""

    def __init__(self, timeout: float | None = None) -> None:
        self._timeout = timeout

    def compile(self, language: Language, source: Path, output: Path) -> None:
        command = [language.compiler_command_name, str(source), language.output_option, str(output)]
        logger.debug("Running compiler: %s", " ".join(command))
        try:
            result = subprocess.run(
                command,
                capture_output=True,
                text=True,
                timeout=self._timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise BuildFailedError(source=str(source), reason=str(e), cause=e) from e

        if result.returncode != 0:
            raise BuildFailedError(
                source=str(source),
                reason=result.stderr.strip() if result.stderr else "unknown error",
                returncode=result.returncode,
            )
