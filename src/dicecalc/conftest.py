from itertools import cycle
from typing import Iterable, List

import pytest


class ScriptedRandom:
    """Replays a fixed sequence of draws, cycling once it runs out.

    Records every (low, high) request so tests can assert on draw order.
    """

    def __init__(self, draws: Iterable[int]):
        self.draws = list(draws)
        self._source = cycle(self.draws)
        self.requests: List[tuple] = []

    def randint(self, a: int, b: int) -> int:
        value = next(self._source)
        self.requests.append((a, b))
        if not a <= value <= b:
            raise AssertionError(f"scripted draw {value} outside [{a}, {b}]")
        return value

    @property
    def calls(self) -> int:
        return len(self.requests)


@pytest.fixture
def scripted():
    """Factory: scripted(6) always draws 6, scripted(4, 6) alternates"""
    def make(*draws: int) -> ScriptedRandom:
        return ScriptedRandom(draws)
    return make
