"""Unit tests for name validation and RED submission checks."""

import pytest

from cseg.core.exceptions import NameTakenError, SubmissionRejected
from cseg.game_engine.judge import CodeJudge, JudgeResult
from cseg.game_engine.rounds.models import GameRules, Player
from cseg.game_engine.rounds.validation import BugIntroductionValidator, validate_player_name
from cseg.game_engine.snippets import Snippet, TestCase

from conftest import BUGGED_CODE, ORIGINAL_CODE, FakeJudge, make_snippet


class TestValidatePlayerName:
    """Tests for join name rules."""

    def test_trims_name(self, rules):
        assert validate_player_name("  Alice  ", [], rules) == "Alice"

    def test_empty_name(self, rules):
        with pytest.raises(NameTakenError, match="cannot be empty"):
            validate_player_name("   ", [], rules)
        with pytest.raises(NameTakenError):
            validate_player_name(None, [], rules)

    def test_length_bounds(self, rules):
        with pytest.raises(NameTakenError, match="at least 2"):
            validate_player_name("A", [], rules)
        with pytest.raises(NameTakenError, match="cannot exceed 20"):
            validate_player_name("A" * 21, [], rules)
        assert validate_player_name("A" * 20, [], rules) == "A" * 20

    def test_duplicate_name_ignores_case(self, rules):
        existing = [Player(id="p_1", name="Alice")]
        with pytest.raises(NameTakenError) as exc_info:
            validate_player_name("alice", existing, rules)
        assert exc_info.value.code == "name_taken"


class TestStaticChecks:
    """Tests for the diff-based checks that run before judging."""

    @pytest.fixture
    def validator(self, rules):
        return BugIntroductionValidator(rules, FakeJudge())

    def test_valid_submission(self, validator):
        analysis = validator.analyze(BUGGED_CODE, ORIGINAL_CODE, "python")
        assert analysis.bug_lines == [3, 4, 5]

    def test_empty_submission(self, validator):
        with pytest.raises(SubmissionRejected) as exc_info:
            validator.analyze("  \n ", ORIGINAL_CODE, "python")
        assert exc_info.value.code == "empty"

    def test_comment_only_changes(self, validator):
        current = ORIGINAL_CODE.replace("# add two numbers", "# sum two numbers")
        with pytest.raises(SubmissionRejected) as exc_info:
            validator.analyze(current, ORIGINAL_CODE, "python")
        assert exc_info.value.code == "comments_only"
        assert exc_info.value.message == "You can only modify actual code lines, not comments!"

    def test_too_few_bugs(self, validator):
        current = ORIGINAL_CODE.replace("a + b", "a - b")
        with pytest.raises(SubmissionRejected) as exc_info:
            validator.analyze(current, ORIGINAL_CODE, "python")
        assert exc_info.value.code == "bug_count"
        assert exc_info.value.message == "Must modify 3-5 code lines. You modified 1 code lines."

    def test_too_many_bugs(self):
        validator = BugIntroductionValidator(GameRules(min_bugs=1, max_bugs=2), FakeJudge())
        with pytest.raises(SubmissionRejected) as exc_info:
            validator.analyze(BUGGED_CODE, ORIGINAL_CODE, "python")
        assert exc_info.value.code == "bug_count"

    def test_drastic_rewrite_rejected(self, validator):
        current = BUGGED_CODE.replace(
            "    total = a - b",
            "    print('something else entirely')",
        )
        with pytest.raises(SubmissionRejected) as exc_info:
            validator.analyze(current, ORIGINAL_CODE, "python")
        assert exc_info.value.code == "too_drastic"
        assert "Line 3" in exc_info.value.message

    @pytest.mark.parametrize("changed, accepted", [(2, False), (3, True), (5, True), (6, False)])
    def test_bounds_are_inclusive(self, rules, changed, accepted):
        original = "\n".join(f"int v{i} = {i};" for i in range(8))
        current = "\n".join(
            f"int v{i} = {i + 1};" if i < changed else f"int v{i} = {i};"
            for i in range(8)
        )
        validator = BugIntroductionValidator(rules, FakeJudge())

        if accepted:
            assert validator.analyze(current, original, "c").bug_count == changed
        else:
            with pytest.raises(SubmissionRejected):
                validator.analyze(current, original, "c")

    def test_short_lines_are_never_drastic(self, rules):
        validator = BugIntroductionValidator(rules, FakeJudge())
        original = "x = 1\ny = 2\nz = 3"
        current = "abcdefgh\nijklmnop\nqrstuvwx"
        assert validator.analyze(current, original, "python").bug_count == 3


class TestMustBreak:
    """Tests for the rule that bugged code must fail a test."""

    @pytest.mark.asyncio
    async def test_failing_code_accepted(self, rules):
        validator = BugIntroductionValidator(rules, FakeJudge())
        analysis = await validator.validate(BUGGED_CODE, ORIGINAL_CODE, make_snippet("s"))
        assert analysis.bug_count == 3

    @pytest.mark.asyncio
    async def test_single_c_bug(self):
        original = "int x = 1;\nreturn x;"
        snippet = Snippet(id="c1", language="c", code=original, test_cases=(TestCase(input=None, expected="1"),))
        validator = BugIntroductionValidator(GameRules(min_bugs=1, max_bugs=1), FakeJudge())

        analysis = await validator.validate("int x = 2;\nreturn x;", original, snippet)

        assert analysis.bug_count == 1
        assert analysis.bug_lines == [1]

    @pytest.mark.asyncio
    async def test_still_passing_rejected(self, rules):
        judge = FakeJudge()
        judge.outcomes[BUGGED_CODE] = JudgeResult(success=True, passed_tests=3, total_tests=3)
        validator = BugIntroductionValidator(rules, judge)

        with pytest.raises(SubmissionRejected) as exc_info:
            await validator.validate(BUGGED_CODE, ORIGINAL_CODE, make_snippet("s"))
        assert exc_info.value.code == "still_passing"
        assert exc_info.value.message.startswith("Your code still works!")

    @pytest.mark.asyncio
    async def test_snippet_without_tests_counts_as_passing(self, rules):
        validator = BugIntroductionValidator(rules, FakeJudge())
        snippet = Snippet(id="s", language="python", code=ORIGINAL_CODE, runner="add(1, 2)")

        with pytest.raises(SubmissionRejected) as exc_info:
            await validator.validate(BUGGED_CODE, ORIGINAL_CODE, snippet)
        assert exc_info.value.code == "still_passing"

    @pytest.mark.asyncio
    async def test_compile_error_accepted_by_default(self, rules):
        judge = FakeJudge()
        judge.outcomes[BUGGED_CODE] = JudgeResult(success=False, total_tests=3, error="Compilation Error: x")
        validator = BugIntroductionValidator(rules, judge)

        analysis = await validator.validate(BUGGED_CODE, ORIGINAL_CODE, make_snippet("s"))
        assert analysis.bug_count == 3

    @pytest.mark.asyncio
    async def test_compile_error_rejected_when_configured(self):
        judge = FakeJudge()
        judge.outcomes[BUGGED_CODE] = JudgeResult(success=False, total_tests=3, error="Compilation Error: x")
        validator = BugIntroductionValidator(GameRules(red_accept_compile_errors=False), judge)

        with pytest.raises(SubmissionRejected) as exc_info:
            await validator.validate(BUGGED_CODE, ORIGINAL_CODE, make_snippet("s"))
        assert exc_info.value.code == "does_not_run"
        assert exc_info.value.message.startswith("Your code must compile and run")

    @pytest.mark.asyncio
    async def test_unparseable_python_rejected_when_configured(self):
        rules = GameRules(min_bugs=1, max_bugs=1, red_accept_compile_errors=False)
        validator = BugIntroductionValidator(rules, CodeJudge())
        broken = ORIGINAL_CODE.replace("total = a + b", "total = a + b +")

        with pytest.raises(SubmissionRejected) as exc_info:
            await validator.validate(broken, ORIGINAL_CODE, make_snippet("s"))
        assert exc_info.value.code == "does_not_run"

    @pytest.mark.asyncio
    async def test_unparseable_python_accepted_by_default(self):
        validator = BugIntroductionValidator(GameRules(min_bugs=1, max_bugs=1), CodeJudge())
        broken = ORIGINAL_CODE.replace("total = a + b", "total = a + b +")

        analysis = await validator.validate(broken, ORIGINAL_CODE, make_snippet("s"))
        assert analysis.bug_lines == [3]

    @pytest.mark.asyncio
    async def test_static_checks_run_before_judging(self, rules):
        judge = FakeJudge()
        validator = BugIntroductionValidator(rules, judge)

        with pytest.raises(SubmissionRejected):
            await validator.validate(ORIGINAL_CODE, ORIGINAL_CODE, make_snippet("s"))
        assert judge.calls == []
