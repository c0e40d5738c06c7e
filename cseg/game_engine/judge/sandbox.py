"""Process-level executor for judged code.

Compiles and runs submissions as local child processes with hard wall-clock
timeouts. There is no container isolation: a hung or runaway child is killed
when its timeout expires and the failure is reported as a result.
"""

import asyncio
import logging
import shutil
import tempfile
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import AsyncIterator, Optional

from cseg.config import settings

logger = logging.getLogger(__name__)


class Language(str, Enum):
    """Supported snippet languages."""
    C = "c"
    CPP = "cpp"
    PYTHON = "python"

    @classmethod
    def parse(cls, value: Optional[str]) -> "Language":
        """Parse a language name, accepting common aliases."""
        name = (value or "").strip().lower()
        return cls(LANGUAGE_ALIASES.get(name, name))


LANGUAGE_ALIASES: dict[str, str] = {
    "c++": "cpp",
    "cxx": "cpp",
    "py": "python",
    "python3": "python",
}


@dataclass(frozen=True)
class LanguageConfig:
    """How a language is built and run."""
    file_extension: str
    compiler: Optional[str]  # None for interpreted languages

    @property
    def is_compiled(self) -> bool:
        return self.compiler is not None


LANGUAGE_CONFIGS: dict[Language, LanguageConfig] = {
    Language.C: LanguageConfig(file_extension=".c", compiler=settings.judge_c_compiler),
    Language.CPP: LanguageConfig(file_extension=".cpp", compiler=settings.judge_cpp_compiler),
    Language.PYTHON: LanguageConfig(file_extension=".py", compiler=None),
}


@dataclass
class ExecutionResult:
    """Result of one child process run."""
    success: bool
    stdout: str
    stderr: str
    exit_code: int
    execution_time_ms: int
    timed_out: bool = False
    error: Optional[str] = None


class ProcessSandbox:
    """Runs compilers and programs as child processes.

    Every run is bounded by a timeout; on expiry the child is killed and
    reaped before returning, so no process outlives its judge call.
    """

    def __init__(
        self,
        max_output_chars: int = settings.judge_max_output_chars,
        temp_root: Optional[str] = settings.judge_temp_dir,
    ):
        self.max_output_chars = max_output_chars
        self.temp_root = temp_root

    @asynccontextmanager
    async def workspace(self) -> AsyncIterator[Path]:
        """Create a private temporary directory, removed on every exit path."""
        temp_dir = tempfile.mkdtemp(prefix="cseg_judge_", dir=self.temp_root)
        try:
            yield Path(temp_dir)
        finally:
            shutil.rmtree(temp_dir, ignore_errors=True)

    async def run(
        self,
        argv: list[str],
        stdin: str = "",
        timeout: float = settings.judge_run_timeout,
        cwd: Optional[Path] = None,
    ) -> ExecutionResult:
        """Run a command, feeding ``stdin`` and capturing its output."""
        start_time = time.perf_counter()
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(cwd) if cwd else None,
            )
        except (FileNotFoundError, PermissionError) as e:
            return ExecutionResult(
                success=False,
                stdout="",
                stderr=str(e),
                exit_code=-1,
                execution_time_ms=0,
                error="executable_unavailable",
            )

        try:
            stdout, stderr = await asyncio.wait_for(
                proc.communicate(input=stdin.encode()),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            return ExecutionResult(
                success=False,
                stdout="",
                stderr="Execution timed out",
                exit_code=-1,
                execution_time_ms=int(timeout * 1000),
                timed_out=True,
                error="timeout",
            )

        execution_time_ms = int((time.perf_counter() - start_time) * 1000)
        return ExecutionResult(
            success=proc.returncode == 0,
            stdout=stdout.decode(errors="replace")[: self.max_output_chars],
            stderr=stderr.decode(errors="replace")[:2000],
            exit_code=proc.returncode,
            execution_time_ms=execution_time_ms,
            error=None if proc.returncode == 0 else f"exit_code_{proc.returncode}",
        )

    async def compile(
        self,
        compiler: str,
        source_path: Path,
        output_path: Path,
        timeout: float = settings.judge_compile_timeout,
    ) -> ExecutionResult:
        """Compile a single source file into ``output_path``."""
        logger.debug(f"Compiling {source_path.name} with {compiler}")
        result = await self.run(
            [compiler, str(source_path), "-o", str(output_path)],
            timeout=timeout,
            cwd=source_path.parent,
        )
        if result.timed_out:
            result.stderr = "Compilation timed out"
            result.error = "compilation_timeout"
        elif result.error == "executable_unavailable":
            result.stderr = f"Compiler not available: {compiler}"
        elif not result.success:
            result.error = "compilation_error"
        return result
