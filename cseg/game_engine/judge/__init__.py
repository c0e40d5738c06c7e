"""Code judge - compiles and runs submissions against snippet test cases."""

from cseg.game_engine.judge.judge import CodeJudge, JudgeResult, TestResult, judge
from cseg.game_engine.judge.sandbox import Language, ProcessSandbox

__all__ = ["CodeJudge", "JudgeResult", "TestResult", "judge", "Language", "ProcessSandbox"]
