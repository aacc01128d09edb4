"""Tests for the subprocess compiler."""

import shutil
import sys

import pytest

from prototyper.exceptions import CompilationFailed
from prototyper.services.compiler import EsbuildCompiler

needs_posix_tools = pytest.mark.skipif(
    sys.platform == "win32" or shutil.which("cat") is None or shutil.which("false") is None,
    reason="requires POSIX cat/false",
)


class TestEsbuildCompiler:

    async def test_rejects_command_outside_allowlist(self):
        compiler = EsbuildCompiler(command=["rm", "-rf", "/"], allowed_commands=["esbuild"])

        with pytest.raises(CompilationFailed, match="not in allowlist"):
            await compiler.compile("const a = 1;")

    async def test_rejects_empty_command(self):
        compiler = EsbuildCompiler(command=[], allowed_commands=["esbuild"])

        with pytest.raises(CompilationFailed, match="empty"):
            await compiler.compile("const a = 1;")

    async def test_allowlist_checks_basename(self):
        compiler = EsbuildCompiler(
            command=["/definitely/missing/esbuild"],
            allowed_commands=["esbuild"],
        )

        with pytest.raises(CompilationFailed, match="Could not start"):
            await compiler.compile("const a = 1;")

    @needs_posix_tools
    async def test_returns_stdout_of_command(self):
        compiler = EsbuildCompiler(command=["cat"], allowed_commands=["cat"])

        compiled = await compiler.compile("export default function App() { return null; }\n")

        assert compiled == "export default function App() { return null; }"

    @needs_posix_tools
    async def test_non_zero_exit_is_a_compilation_failure(self):
        compiler = EsbuildCompiler(command=["false"], allowed_commands=["false"])

        with pytest.raises(CompilationFailed, match="exited with status 1"):
            await compiler.compile("const a = 1;")

    @needs_posix_tools
    async def test_empty_output_is_a_compilation_failure(self):
        compiler = EsbuildCompiler(command=["cat"], allowed_commands=["cat"])

        with pytest.raises(CompilationFailed, match="no output"):
            await compiler.compile("   ")

    @pytest.mark.skipif(shutil.which("sleep") is None, reason="requires sleep")
    async def test_times_out(self):
        compiler = EsbuildCompiler(command=["sleep", "5"], allowed_commands=["sleep"], timeout_seconds=0.2)

        with pytest.raises(CompilationFailed, match="timed out"):
            await compiler.compile("const a = 1;")

    @pytest.mark.skipif(shutil.which("esbuild") is None, reason="esbuild is not installed")
    async def test_esbuild_transforms_jsx(self):
        compiler = EsbuildCompiler(
            command=["esbuild", "--loader=jsx", "--format=cjs", "--log-level=error"],
            allowed_commands=["esbuild"],
        )

        compiled = await compiler.compile("export default function App() { return <div>Hi</div>; }")

        assert "React.createElement" in compiled
        assert "<div>" not in compiled
