import random
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from cseg.game_engine.judge import JudgeResult
from cseg.game_engine.rounds import GameRules, GameSession, RoundEngine, round_engine
from cseg.game_engine.snippets import Snippet, TestCase
from cseg.main import app


ORIGINAL_CODE = "\n".join([
    "def add(a, b):",
    "    # add two numbers",
    "    total = a + b",
    "    total = total * 1",
    "    total = total + 0",
    "    return total",
])

# Three subtle edits on lines 3-5
BUGGED_CODE = "\n".join([
    "def add(a, b):",
    "    # add two numbers",
    "    total = a - b",
    "    total = total * 2",
    "    total = total + 1",
    "    return total",
])


def make_snippet(snippet_id: str, code: str = ORIGINAL_CODE) -> Snippet:
    return Snippet(
        id=snippet_id,
        language="python",
        code=code,
        runner="add(*INPUT)",
        test_cases=(
            TestCase(input=[1, 2], expected=3),
            TestCase(input=[0, 0], expected=0),
            TestCase(input=[-4, 4], expected=0),
        ),
    )


class FakeJudge:
    """Judge double: the untouched snippet code passes, anything else fails.

    Specific outcomes can be forced per code string through ``outcomes``.
    """

    def __init__(self):
        self.outcomes: dict[str, JudgeResult] = {}
        self.calls: list[tuple[str, str | None]] = []

    async def judge(self, code, snippet):
        self.calls.append((code, snippet.id if snippet else None))
        if code in self.outcomes:
            return self.outcomes[code]
        total = len(snippet.test_cases)
        passed = total if code == snippet.code else 0
        return JudgeResult(success=True, passed_tests=passed, total_tests=total)


@pytest.fixture
def rules():
    return GameRules()


@pytest.fixture
def fake_judge():
    return FakeJudge()


@pytest.fixture
def snippets():
    return [make_snippet("snip-a"), make_snippet("snip-b")]


@pytest.fixture
def engine(rules, fake_judge, snippets):
    """Isolated engine with a deterministic rng."""
    return RoundEngine(rules=rules, judge=fake_judge, snippets=snippets, rng=random.Random(7))


@pytest_asyncio.fixture
async def client(fake_judge) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client against a clean global engine."""
    saved_judge = round_engine.judge
    round_engine.session = GameSession()
    round_engine.snippets = [make_snippet("snip-a"), make_snippet("snip-b")]
    round_engine.judge = fake_judge

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    round_engine.judge = saved_judge
    round_engine.session = GameSession()
    round_engine.snippets = []
