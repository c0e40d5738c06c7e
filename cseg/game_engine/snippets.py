"""Code snippets handed out in RED rounds.

Snippets are supplied externally (``POST /api/snippets`` or a JSON file named
by ``CSEG_SNIPPETS_PATH``) and replace the working set wholesale. A small
built-in set is used when nothing else has been loaded.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional


@dataclass(frozen=True)
class TestCase:
    """A single test case for a snippet.

    ``input`` may be None, a scalar, or a list. Compiled snippets receive it
    on stdin, interpreted snippets see it bound to ``INPUT``.
    """
    __test__ = False  # keep pytest from collecting this class

    input: Any = None
    expected: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {"input": self.input, "expected": self.expected}


@dataclass(frozen=True)
class Snippet:
    """An immutable code snippet with its test cases."""
    id: str
    language: str
    code: str
    test_cases: tuple[TestCase, ...] = ()
    runner: Optional[str] = None  # Python expression producing the result
    title: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "language": self.language,
            "code": self.code,
            "testCases": [tc.to_dict() for tc in self.test_cases],
        }
        if self.runner is not None:
            data["runner"] = self.runner
        if self.title is not None:
            data["title"] = self.title
        return data

    def summary(self) -> dict[str, Any]:
        """Public metadata; code, runner and expected outputs are left out."""
        data: dict[str, Any] = {
            "id": self.id,
            "language": self.language,
            "testCaseCount": len(self.test_cases),
        }
        if self.title is not None:
            data["title"] = self.title
        return data


def parse_snippet(data: Any) -> Snippet:
    """Build a Snippet from its JSON form.

    Accepts ``testCases`` or ``test_cases``. Raises ValueError on malformed
    input.
    """
    if not isinstance(data, dict):
        raise ValueError("Snippet must be an object")

    snippet_id = data.get("id")
    if snippet_id is None or str(snippet_id).strip() == "":
        raise ValueError("Snippet is missing an id")

    code = data.get("code")
    if not isinstance(code, str):
        raise ValueError(f"Snippet {snippet_id} has no code")

    raw_cases = data.get("testCases", data.get("test_cases", []))
    if not isinstance(raw_cases, list):
        raise ValueError(f"Snippet {snippet_id} test cases must be a list")

    test_cases = []
    for tc in raw_cases:
        if not isinstance(tc, dict):
            raise ValueError(f"Snippet {snippet_id} has a malformed test case")
        test_cases.append(TestCase(input=tc.get("input"), expected=tc.get("expected")))

    language = str(data.get("language") or "python").lower()

    return Snippet(
        id=str(snippet_id),
        language=language,
        code=code,
        test_cases=tuple(test_cases),
        runner=data.get("runner"),
        title=data.get("title"),
    )


def parse_snippets(data: Any) -> list[Snippet]:
    """Parse a snippet set, rejecting duplicate ids."""
    if not isinstance(data, list):
        raise ValueError("Snippets data must be a list")

    snippets = [parse_snippet(item) for item in data]
    seen: set[str] = set()
    for snippet in snippets:
        if snippet.id in seen:
            raise ValueError(f"Duplicate snippet id: {snippet.id}")
        seen.add(snippet.id)
    return snippets


def load_snippets_file(path: str | Path) -> list[Snippet]:
    """Load a snippet set from a JSON file."""
    with open(path, encoding="utf-8") as f:
        return parse_snippets(json.load(f))


BUILTIN_SNIPPETS: list[Snippet] = [
    Snippet(
        id="c-array-sum",
        title="Array Sum",
        language="c",
        code="""#include <stdio.h>

int main(void) {
    int n = 0;
    long long total = 0;
    // read the count, then the values
    if (scanf("%d", &n) != 1) return 1;
    for (int i = 0; i < n; i++) {
        int value;
        scanf("%d", &value);
        total += value;
    }
    printf("%lld\\n", total);
    return 0;
}""",
        test_cases=(
            TestCase(input=["3", "1 2 3"], expected="6"),
            TestCase(input=["1", "-5"], expected="-5"),
            TestCase(input=["4", "10 20 30 40"], expected="100"),
        ),
    ),
    Snippet(
        id="cpp-max-element",
        title="Maximum Element",
        language="cpp",
        code="""#include <iostream>
#include <vector>

int main() {
    int n;
    std::cin >> n;
    std::vector<int> values(n);
    for (int i = 0; i < n; ++i) {
        std::cin >> values[i];
    }
    int best = values[0];
    for (int i = 1; i < n; ++i) {
        if (values[i] > best) {
            best = values[i];
        }
    }
    std::cout << best << std::endl;
    return 0;
}""",
        test_cases=(
            TestCase(input=["3", "4 9 2"], expected="9"),
            TestCase(input=["1", "7"], expected="7"),
            TestCase(input=["5", "-1 -8 -3 -4 -2"], expected="-1"),
        ),
    ),
    Snippet(
        id="py-fizzbuzz",
        title="FizzBuzz",
        language="python",
        code="""def fizzbuzz(n):
    # Return the FizzBuzz sequence from 1 to n
    out = []
    for i in range(1, n + 1):
        if i % 15 == 0:
            out.append("FizzBuzz")
        elif i % 3 == 0:
            out.append("Fizz")
        elif i % 5 == 0:
            out.append("Buzz")
        else:
            out.append(str(i))
    return out""",
        runner="fizzbuzz(INPUT)",
        test_cases=(
            TestCase(input=5, expected=["1", "2", "Fizz", "4", "Buzz"]),
            TestCase(input=0, expected=[]),
            TestCase(
                input=15,
                expected=[
                    "1", "2", "Fizz", "4", "Buzz", "Fizz", "7", "8",
                    "Fizz", "Buzz", "11", "Fizz", "13", "14", "FizzBuzz",
                ],
            ),
        ),
    ),
    Snippet(
        id="py-binary-search",
        title="Binary Search",
        language="python",
        code="""def binary_search(items, target):
    lo = 0
    hi = len(items) - 1
    while lo <= hi:
        mid = (lo + hi) // 2
        if items[mid] == target:
            return mid
        if items[mid] < target:
            lo = mid + 1
        else:
            hi = mid - 1
    return -1""",
        runner="binary_search(*INPUT)",
        test_cases=(
            TestCase(input=[[1, 3, 5, 7, 9], 7], expected=3),
            TestCase(input=[[1, 3, 5, 7, 9], 1], expected=0),
            TestCase(input=[[1, 3, 5, 7, 9], 4], expected=-1),
            TestCase(input=[[], 4], expected=-1),
        ),
    ),
]


def get_builtin_snippets() -> list[Snippet]:
    """Get the built-in snippet set."""
    return BUILTIN_SNIPPETS.copy()
