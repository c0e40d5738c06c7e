"""Code judge for RED and BLUE submissions.

Runs code against a snippet's test cases. C and C++ are compiled once and the
binary is run per test with the input on stdin. Python runs each test in its
own interpreter process with ``INPUT`` bound and the snippet's runner
expression evaluated; results are compared by canonical JSON.
"""

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Optional
from uuid import uuid4

from cseg.config import settings
from cseg.core.metrics import record_judge_run
from cseg.game_engine.judge.sandbox import (
    LANGUAGE_CONFIGS,
    ExecutionResult,
    Language,
    ProcessSandbox,
)
from cseg.game_engine.snippets import Snippet, TestCase

logger = logging.getLogger(__name__)


# Child-side driver for interpreted snippets. Reads {code, runner, input} as
# JSON on stdin and writes {"ok": ..., "result"|"error": ...} on stdout.
PYTHON_DRIVER = '''\
import contextlib
import io
import json
import sys


def main():
    payload = json.loads(sys.stdin.read())
    namespace = {"__name__": "__submission__", "INPUT": payload["input"]}
    try:
        submission = compile(payload["code"], "<submission>", "exec")
    except (SyntaxError, ValueError) as exc:
        sys.stdout.write(json.dumps({"ok": False, "compile_error": f"{type(exc).__name__}: {exc}"}))
        return
    try:
        with contextlib.redirect_stdout(io.StringIO()):
            exec(submission, namespace)
            namespace["INPUT"] = payload["input"]
            try:
                runner = compile(payload["runner"], "<runner>", "eval")
            except SyntaxError:
                exec(compile(payload["runner"], "<runner>", "exec"), namespace)
                result = namespace.get("RESULT")
            else:
                result = eval(runner, namespace)
    except (Exception, SystemExit) as exc:
        sys.stdout.write(json.dumps({"ok": False, "error": f"{type(exc).__name__}: {exc}"}))
        return
    try:
        sys.stdout.write(json.dumps({"ok": True, "result": result}))
    except (TypeError, ValueError) as exc:
        sys.stdout.write(json.dumps({"ok": False, "error": f"Unserializable result: {exc}"}))


main()
'''


@dataclass
class TestResult:
    """Result of running a single test case."""
    __test__ = False

    input: Any
    expected: Any
    actual: Any
    passed: bool
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data = {
            "input": self.input,
            "expected": self.expected,
            "actual": self.actual,
            "passed": self.passed,
        }
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass
class JudgeResult:
    """Complete result of judging code against a snippet.

    ``success`` means the code compiled and produced a results array; it says
    nothing about how many tests passed.
    """
    success: bool
    passed_tests: int = 0
    total_tests: int = 0
    results: list[TestResult] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def all_passed(self) -> bool:
        return self.success and self.passed_tests == self.total_tests

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "success": self.success,
            "results": [r.to_dict() for r in self.results],
            "passedTests": self.passed_tests,
            "totalTests": self.total_tests,
        }
        if self.error is not None:
            data["error"] = self.error
        return data


def render_scalar(value: Any) -> str:
    """Render a JSON scalar the way a C program would print or read it."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def format_stdin(test_input: Any) -> str:
    """Turn a test value into program text; sequences become one line per item.

    Used for stdin and for expected stdout alike.
    """
    if isinstance(test_input, (list, tuple)):
        return "\n".join(render_scalar(item) for item in test_input)
    return render_scalar(test_input)


def canonical(value: Any) -> str:
    """Canonical JSON form used for typed equality of interpreted results."""
    return json.dumps(value, sort_keys=True, separators=(",", ":"))


class CodeJudge:
    """Judges code against a snippet's test cases.

    Temporary sources and binaries live in a per-call workspace named with a
    fresh uuid, so concurrent judgments never share files.
    """

    def __init__(
        self,
        sandbox: Optional[ProcessSandbox] = None,
        compile_timeout: float = settings.judge_compile_timeout,
        run_timeout: float = settings.judge_run_timeout,
        python_executable: str = settings.judge_python_executable,
    ):
        self.sandbox = sandbox or ProcessSandbox()
        self.compile_timeout = compile_timeout
        self.run_timeout = run_timeout
        self.python_executable = python_executable

    def normalize_output(self, output: str) -> str:
        """Trim surrounding whitespace and normalize line endings to \\n."""
        return output.strip().replace("\r\n", "\n")

    def compare_output(self, expected: Any, actual: str) -> bool:
        return self.normalize_output(format_stdin(expected)) == self.normalize_output(actual)

    async def judge(self, code: str, snippet: Optional[Snippet]) -> JudgeResult:
        """Judge ``code`` against ``snippet``.

        Never raises: unexpected failures are logged and returned as an
        unsuccessful result.
        """
        if snippet is None:
            return JudgeResult(success=False, error="No snippet provided")

        try:
            language = Language.parse(snippet.language)
        except ValueError:
            return JudgeResult(success=False, error=f"Unsupported language: {snippet.language}")

        start_time = time.perf_counter()
        config = LANGUAGE_CONFIGS[language]
        try:
            if config.is_compiled:
                result = await self._judge_compiled(code, snippet, config.compiler, config.file_extension)
            else:
                result = await self._judge_interpreted(code, snippet)
        except Exception as e:
            logger.exception(f"Judge failed for snippet {snippet.id}")
            result = JudgeResult(success=False, error=f"Server Error: {e}")

        if not result.success:
            outcome = "error"
        elif result.all_passed:
            outcome = "passed"
        else:
            outcome = "failed"
        record_judge_run(language.value, outcome, time.perf_counter() - start_time)

        return result

    async def _judge_compiled(
        self,
        code: str,
        snippet: Snippet,
        compiler: str,
        extension: str,
    ) -> JudgeResult:
        async with self.sandbox.workspace() as workdir:
            unit = uuid4().hex
            source_path = workdir / f"temp_{unit}{extension}"
            binary_path = workdir / f"temp_{unit}.out"
            source_path.write_text(code, encoding="utf-8")

            compiled = await self.sandbox.compile(
                compiler,
                source_path,
                binary_path,
                timeout=self.compile_timeout,
            )
            if not compiled.success:
                return JudgeResult(
                    success=False,
                    total_tests=len(snippet.test_cases),
                    error=f"Compilation Error: {compiled.stderr}",
                )

            results = []
            for test_case in snippet.test_cases:
                execution = await self.sandbox.run(
                    [str(binary_path)],
                    stdin=format_stdin(test_case.input),
                    timeout=self.run_timeout,
                    cwd=workdir,
                )
                results.append(self._compiled_test_result(test_case, execution))

        return self._collect(results)

    def _compiled_test_result(self, test_case: TestCase, execution: ExecutionResult) -> TestResult:
        if execution.timed_out:
            return TestResult(test_case.input, test_case.expected, None, False, "Timeout")
        if not execution.success:
            return TestResult(test_case.input, test_case.expected, None, False, "Runtime Error")

        actual = self.normalize_output(execution.stdout)
        passed = self.compare_output(test_case.expected, actual)
        return TestResult(test_case.input, test_case.expected, actual, passed)

    async def _judge_interpreted(self, code: str, snippet: Snippet) -> JudgeResult:
        if not snippet.runner:
            return JudgeResult(success=False, error="No runner")

        async with self.sandbox.workspace() as workdir:
            driver_path = workdir / f"driver_{uuid4().hex}.py"
            driver_path.write_text(PYTHON_DRIVER, encoding="utf-8")

            results = []
            for test_case in snippet.test_cases:
                payload = json.dumps({
                    "code": code,
                    "runner": snippet.runner,
                    "input": test_case.input,
                })
                execution = await self.sandbox.run(
                    [self.python_executable, "-I", str(driver_path)],
                    stdin=payload,
                    timeout=self.run_timeout,
                    cwd=workdir,
                )
                compile_error = self._compile_error(execution)
                if compile_error:
                    return JudgeResult(
                        success=False,
                        total_tests=len(snippet.test_cases),
                        error=f"Compilation Error: {compile_error}",
                    )
                results.append(self._interpreted_test_result(test_case, execution))

        return self._collect(results)

    def _compile_error(self, execution: ExecutionResult) -> Optional[str]:
        """The parse error the driver reports when the submission does not compile."""
        if execution.timed_out:
            return None
        try:
            outcome = json.loads(execution.stdout)
        except ValueError:
            return None
        if isinstance(outcome, dict):
            return outcome.get("compile_error")
        return None

    def _interpreted_test_result(self, test_case: TestCase, execution: ExecutionResult) -> TestResult:
        if execution.timed_out:
            return TestResult(test_case.input, test_case.expected, None, False, "Timeout")

        try:
            outcome = json.loads(execution.stdout)
        except ValueError:
            outcome = None
        if not isinstance(outcome, dict):
            detail = execution.stderr.strip().splitlines()
            error = detail[-1] if detail else "Runtime Error"
            return TestResult(test_case.input, test_case.expected, None, False, error)

        if not outcome.get("ok"):
            return TestResult(test_case.input, test_case.expected, None, False, outcome.get("error"))

        actual = outcome.get("result")
        passed = canonical(actual) == canonical(test_case.expected)
        return TestResult(test_case.input, test_case.expected, actual, passed)

    def _collect(self, results: list[TestResult]) -> JudgeResult:
        return JudgeResult(
            success=True,
            passed_tests=sum(1 for r in results if r.passed),
            total_tests=len(results),
            results=results,
        )


# Global judge instance
judge = CodeJudge()
