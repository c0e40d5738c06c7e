"""Line-wise comparison of a RED submission against its baseline.

A changed line counts as a bug only when the *original* line was code. Edits
confined to comments or blank lines are tracked separately and never count.
"""

import re
from dataclasses import dataclass, field

C_COMMENT_PREFIXES = ("//", "/*", "*")
C_COMMENT_SUFFIXES = ("*/",)

# language -> (line prefixes, line suffixes) that mark a comment line
COMMENT_MARKERS: dict[str, tuple[tuple[str, ...], tuple[str, ...]]] = {
    "c": (C_COMMENT_PREFIXES, C_COMMENT_SUFFIXES),
    "cpp": (C_COMMENT_PREFIXES, C_COMMENT_SUFFIXES),
    "python": (("#",), ()),
}


@dataclass(frozen=True)
class LineDiff:
    """A single changed line (1-indexed)."""
    line: int
    before: str
    after: str


@dataclass
class BugAnalysis:
    """Classification of every changed line in a submission."""
    bug_lines: list[int] = field(default_factory=list)
    comment_lines: list[int] = field(default_factory=list)
    diffs: list[LineDiff] = field(default_factory=list)

    @property
    def bug_count(self) -> int:
        return len(self.bug_lines)

    @property
    def comment_only_changes(self) -> int:
        return len(self.comment_lines)

    def bug_diffs(self) -> list[LineDiff]:
        bug_set = set(self.bug_lines)
        return [d for d in self.diffs if d.line in bug_set]


def split_lines(code: str | None) -> list[str]:
    """Split code into lines, accepting both \\n and \\r\\n endings."""
    if not code:
        return []
    return re.split(r"\r?\n", code)


def is_code_line(line: str, language: str = "c") -> bool:
    """True for a non-blank line that is not a comment marker line.

    Unknown languages use C-style markers.
    """
    trimmed = line.strip()
    if not trimmed:
        return False
    prefixes, suffixes = COMMENT_MARKERS.get(language, COMMENT_MARKERS["c"])
    if trimmed.startswith(prefixes):
        return False
    if suffixes and trimmed.endswith(suffixes):
        return False
    return True


def diff_lines(original: str | None, current: str | None) -> list[LineDiff]:
    """Compare two versions line by line, padding the shorter with blanks."""
    before_lines = split_lines(original)
    after_lines = split_lines(current)
    length = max(len(before_lines), len(after_lines))
    before_lines += [""] * (length - len(before_lines))
    after_lines += [""] * (length - len(after_lines))

    return [
        LineDiff(line=i + 1, before=before, after=after)
        for i, (before, after) in enumerate(zip(before_lines, after_lines))
        if before != after
    ]


def analyze_changes(
    original: str | None,
    current: str | None,
    language: str = "c",
) -> BugAnalysis:
    """Classify every changed line as a bug or a comment/blank change."""
    analysis = BugAnalysis(diffs=diff_lines(original, current))
    for d in analysis.diffs:
        if is_code_line(d.before, language):
            analysis.bug_lines.append(d.line)
        else:
            analysis.comment_lines.append(d.line)
    return analysis


def levenshtein(a: str, b: str) -> int:
    """Edit distance between two strings (insert, delete, substitute)."""
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            current.append(min(
                previous[j] + 1,         # deletion
                current[j - 1] + 1,      # insertion
                previous[j - 1] + cost,  # substitution
            ))
        previous = current
    return previous[-1]
