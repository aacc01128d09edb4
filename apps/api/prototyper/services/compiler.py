"""JSX compilation.

Transforms generated component source into runnable JavaScript by piping it
through an external transform command (esbuild by default):
- Allowlist of permitted commands
- Timeout per compilation
- Source on stdin, compiled output on stdout, diagnostics on stderr

Compilation is deterministic for a given source, so failures are reported
and never retried here.
"""

from __future__ import annotations

import asyncio
import logging
import os
import time
from abc import ABC, abstractmethod
from collections.abc import Sequence

from prototyper.exceptions import CompilationFailed

logger = logging.getLogger(__name__)


class Compiler(ABC):
    """Source-to-runnable transform."""

    @abstractmethod
    async def compile(self, source: str) -> str:
        """Return compiled JavaScript or raise ``CompilationFailed``."""
        ...


class EsbuildCompiler(Compiler):
    """Runs a JSX transform command as a subprocess."""

    def __init__(
        self,
        command: Sequence[str],
        allowed_commands: Sequence[str],
        timeout_seconds: float = 30.0,
    ):
        self.command = list(command)
        self.allowed_commands = list(allowed_commands)
        self.timeout_seconds = timeout_seconds

    def _check_command(self) -> None:
        if not self.command:
            raise CompilationFailed("Compiler command is empty")

        base_command = os.path.basename(self.command[0])
        if base_command not in self.allowed_commands:
            raise CompilationFailed(
                f"Command '{base_command}' is not in allowlist: {self.allowed_commands}"
            )

    async def compile(self, source: str) -> str:
        self._check_command()
        start = time.perf_counter()

        try:
            process = await asyncio.create_subprocess_exec(
                *self.command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise CompilationFailed(f"Could not start '{self.command[0]}': {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(source.encode("utf-8")),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            process.kill()
            await process.wait()
            raise CompilationFailed(
                f"Compiler timed out after {self.timeout_seconds} seconds"
            ) from e

        latency_ms = int((time.perf_counter() - start) * 1000)

        if process.returncode != 0:
            detail = stderr.decode("utf-8", errors="replace").strip()
            raise CompilationFailed(detail or f"Compiler exited with status {process.returncode}")

        compiled = stdout.decode("utf-8", errors="replace").strip()
        if not compiled:
            raise CompilationFailed("Compiler produced no output")

        logger.debug(f"Compiled {len(source)} chars of source in {latency_ms}ms")
        return compiled
