"""Validation for player names and RED round submissions."""

import logging
from typing import Iterable

from cseg.core.exceptions import NameTakenError, SubmissionRejected
from cseg.game_engine.judge import CodeJudge, JudgeResult, Language
from cseg.game_engine.rounds.diff import BugAnalysis, analyze_changes, levenshtein
from cseg.game_engine.rounds.models import GameRules, Player
from cseg.game_engine.snippets import Snippet

logger = logging.getLogger(__name__)


def validate_player_name(name: str | None, existing: Iterable[Player], rules: GameRules) -> str:
    """Check a join name and return it trimmed.

    Names must be 2-20 characters (by default) and unique ignoring case.
    """
    trimmed = (name or "").strip()
    if not trimmed:
        raise NameTakenError("Name cannot be empty.")
    if len(trimmed) < rules.player_name_min_length:
        raise NameTakenError(f"Name must be at least {rules.player_name_min_length} characters.")
    if len(trimmed) > rules.player_name_max_length:
        raise NameTakenError(f"Name cannot exceed {rules.player_name_max_length} characters.")

    taken = {p.name.lower() for p in existing}
    if trimmed.lower() in taken:
        raise NameTakenError("Name already taken", code="name_taken")
    return trimmed


def language_of(snippet: Snippet) -> str:
    try:
        return Language.parse(snippet.language).value
    except ValueError:
        return snippet.language


class BugIntroductionValidator:
    """Decides whether a RED submission is an acceptable set of bugs.

    Checks run in order and the first failure rejects the submission:

    1. no bug line may be rewritten beyond ``max_drastic_ratio`` edit distance
    2. at least one code line must change when comment lines changed
    3. the bug count must be within [min_bugs, max_bugs]
    4. the code must fail at least one test case
    """

    def __init__(self, rules: GameRules, judge: CodeJudge):
        self.rules = rules
        self.judge = judge

    def check_subtlety(self, analysis: BugAnalysis) -> None:
        threshold = self.rules.min_drastic_line_length
        for d in analysis.bug_diffs():
            if len(d.before) > threshold and len(d.after) > threshold:
                distance = levenshtein(d.before, d.after)
                if distance > len(d.before) * self.rules.max_drastic_ratio:
                    raise SubmissionRejected(
                        f"Line {d.line} changed too significantly. Introduce subtle bugs!",
                        code="too_drastic",
                    )

    def check_bug_count(self, analysis: BugAnalysis) -> None:
        count = analysis.bug_count
        if count == 0 and analysis.comment_only_changes > 0:
            raise SubmissionRejected(
                "You can only modify actual code lines, not comments!",
                code="comments_only",
            )
        if count < self.rules.min_bugs or count > self.rules.max_bugs:
            raise SubmissionRejected(
                f"Must modify {self.rules.min_bugs}-{self.rules.max_bugs} code lines. "
                f"You modified {count} code lines.",
                code="bug_count",
            )

    def analyze(self, current: str, original: str, language: str = "c") -> BugAnalysis:
        """Run the static checks (1-3) and return the line analysis."""
        if not current or not current.strip():
            raise SubmissionRejected("Submission cannot be empty.", code="empty")

        analysis = analyze_changes(original, current, language)
        self.check_subtlety(analysis)
        self.check_bug_count(analysis)
        return analysis

    async def check_breaks(self, current: str, snippet: Snippet) -> JudgeResult:
        """Must-break rule: code that passes every test is not a bug."""
        result = await self.judge.judge(current, snippet)
        if not result.success:
            if self.rules.red_accept_compile_errors:
                logger.info(f"RED submission for {snippet.id} does not run, accepted as broken")
                return result
            raise SubmissionRejected(
                f"Your code must compile and run. {result.error or ''}".strip(),
                code="does_not_run",
            )
        if result.all_passed:
            raise SubmissionRejected(
                "Your code still works! You must introduce a bug that causes at least one test failure.",
                code="still_passing",
            )
        return result

    async def validate(self, current: str, original: str, snippet: Snippet) -> BugAnalysis:
        analysis = self.analyze(current, original, language_of(snippet))
        await self.check_breaks(current, snippet)
        return analysis
