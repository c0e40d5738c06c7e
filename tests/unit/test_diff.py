"""Unit tests for line diffing and bug line classification."""

from cseg.game_engine.rounds.diff import (
    analyze_changes,
    diff_lines,
    is_code_line,
    levenshtein,
    split_lines,
)


class TestSplitLines:
    def test_empty(self):
        assert split_lines("") == []
        assert split_lines(None) == []

    def test_crlf_and_lf(self):
        assert split_lines("a\r\nb\nc") == ["a", "b", "c"]


class TestIsCodeLine:
    """Tests for code/comment classification."""

    def test_blank_lines_are_not_code(self):
        assert not is_code_line("")
        assert not is_code_line("    \t")

    def test_c_comment_markers(self):
        assert not is_code_line("// note")
        assert not is_code_line("  /* block")
        assert not is_code_line(" * continued")
        assert not is_code_line("end of block */")

    def test_c_code(self):
        assert is_code_line("int x = 1;")
        assert is_code_line("#include <stdio.h>")
        assert is_code_line("return a / b;")

    def test_python_comments(self):
        assert not is_code_line("    # explain", "python")
        assert is_code_line("    x = a * b", "python")
        assert is_code_line("    return '# not a comment'", "python")

    def test_unknown_language_uses_c_markers(self):
        assert not is_code_line("// note", "rust")


class TestDiffLines:
    def test_identical_code_has_no_diffs(self):
        assert diff_lines("a\nb", "a\nb") == []

    def test_changed_lines_are_one_indexed(self):
        diffs = diff_lines("a\nb\nc", "a\nB\nc")
        assert len(diffs) == 1
        assert diffs[0].line == 2
        assert diffs[0].before == "b"
        assert diffs[0].after == "B"

    def test_shorter_side_is_padded(self):
        diffs = diff_lines("a", "a\nextra")
        assert [(d.line, d.before, d.after) for d in diffs] == [(2, "", "extra")]

    def test_line_ending_change_is_not_a_diff(self):
        assert diff_lines("a\nb", "a\r\nb") == []


class TestAnalyzeChanges:
    """Tests for bug counting."""

    def test_code_lines_count_as_bugs(self):
        original = "int a = 1;\nint b = 2;\nint c = 3;"
        current = "int a = 2;\nint b = 2;\nint c = 4;"

        analysis = analyze_changes(original, current)

        assert analysis.bug_lines == [1, 3]
        assert analysis.bug_count == 2
        assert analysis.comment_only_changes == 0

    def test_comment_edits_do_not_count(self):
        original = "// sum values\nint total = 0;"
        current = "// add values\nint total = 0;"

        analysis = analyze_changes(original, current)

        assert analysis.bug_count == 0
        assert analysis.comment_lines == [1]

    def test_classification_uses_the_original_line(self):
        # Turning code into a comment still counts as a bug.
        analysis = analyze_changes("int x = 1;", "// int x = 1;")
        assert analysis.bug_lines == [1]

        # Writing code over a blank line does not.
        analysis = analyze_changes("int x = 1;\n", "int x = 1;\nint y = 2;")
        assert analysis.bug_count == 0
        assert analysis.comment_lines == [2]

    def test_bug_diffs(self):
        analysis = analyze_changes("# c\nx = 1", "# d\nx = 2", "python")
        assert [d.line for d in analysis.bug_diffs()] == [2]


class TestLevenshtein:
    def test_known_distances(self):
        assert levenshtein("kitten", "sitting") == 3
        assert levenshtein("flaw", "lawn") == 2
        assert levenshtein("same", "same") == 0

    def test_empty_strings(self):
        assert levenshtein("", "abc") == 3
        assert levenshtein("abc", "") == 3
        assert levenshtein("", "") == 0

    def test_symmetric(self):
        assert levenshtein("total += value;", "total -= value;") == 1
        assert levenshtein("total -= value;", "total += value;") == 1
