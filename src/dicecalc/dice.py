from dataclasses import dataclass
from typing import Protocol, Tuple, Union
import logging
import random
import re

from dicecalc.errors import ParseError

logger = logging.getLogger(__name__)

_DIGITS = re.compile(r"^[0-9]+$")


class RandomSource(Protocol):
    def randint(self, a: int, b: int) -> int:
        """Return a uniformly drawn integer in [a, b], both ends inclusive"""
        ...


@dataclass(frozen=True)
class Constant:
    value: int

    def evaluate(self, rng: RandomSource) -> int:
        return self.value

    def max_value(self) -> int:
        return self.value

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class Random:
    low: int
    high: int

    def evaluate(self, rng: RandomSource) -> int:
        """Draw a fresh value on every call"""
        return rng.randint(self.low, self.high)

    def max_value(self) -> int:
        return self.high

    def __str__(self) -> str:
        if self.low == 1:
            return f"d{self.high}"
        return f"({self.low}-{self.high})"


@dataclass(frozen=True)
class Combined:
    values: Tuple['Value', ...]

    def evaluate(self, rng: RandomSource) -> int:
        return sum(v.evaluate(rng) for v in self.values)

    def max_value(self) -> int:
        return sum(v.max_value() for v in self.values)

    def __str__(self) -> str:
        if not self.values:
            return "0"
        # NdM parses to identical Random terms; render them back the same way
        if all(v == self.values[0] for v in self.values) \
                and isinstance(self.values[0], Random) and self.values[0].low == 1:
            return f"{len(self.values)}d{self.values[0].high}"
        return " + ".join(str(v) for v in self.values)


Value = Union[Constant, Random, Combined]

NONE = Constant(0)
D6 = Random(1, 6)
D3 = Random(1, 3)

# Process-wide source used when the caller does not inject one
default_rng = random.Random()


def add(a: Value, b: Value) -> Value:
    return Combined((a, b))


def is_digits(text: str) -> bool:
    return bool(_DIGITS.match(text))


def parse(text: str) -> Value:
    """Parse dice notation such as "3", "d6", "2d6" or "2d6 + 1".

    Raises ParseError for anything else.
    """
    trimmed = text.strip().lower()
    if is_digits(trimmed):
        return Constant(int(trimmed))

    if "+" in trimmed:
        return Combined(tuple(parse(term) for term in trimmed.split("+")))

    if "d" in trimmed:
        parts = trimmed.split("d")
        if len(parts) != 2:
            raise _fail(text)
        count, sides = parts[0].strip(), parts[1].strip()
        if not is_digits(sides) or int(sides) < 1:
            raise _fail(text)
        if not count:
            return Random(1, int(sides))
        if not is_digits(count):
            raise _fail(text)
        return Combined(tuple(Random(1, int(sides)) for _ in range(int(count))))

    raise _fail(text)


def ceiling(text: str) -> int:
    """Largest value the expression can produce, computed from the text alone.

    Accepts exactly what parse() accepts, but never expands "NdM" into N
    terms, so it stays cheap for huge counts.
    """
    trimmed = text.strip().lower()
    if is_digits(trimmed):
        return int(trimmed)

    if "+" in trimmed:
        return sum(ceiling(term) for term in trimmed.split("+"))

    if "d" in trimmed:
        parts = trimmed.split("d")
        if len(parts) != 2:
            raise _fail(text)
        count, sides = parts[0].strip(), parts[1].strip()
        if not is_digits(sides) or int(sides) < 1:
            raise _fail(text)
        if not count:
            return int(sides)
        if not is_digits(count):
            raise _fail(text)
        return int(count) * int(sides)

    raise _fail(text)


def _fail(text: str) -> ParseError:
    logger.debug("Rejected dice expression %r", text)
    return ParseError(f"Cannot parse value '{text}'", text=text)


def increase(text: str) -> str:
    """Step the textual expression up by one, adjusting its trailing addend"""
    trimmed = text.strip().lower()
    if is_digits(trimmed):
        return str(int(trimmed) + 1)

    if "+" in trimmed:
        head, _, addition = trimmed.rpartition("+")
        return f"{head.strip()} + {increase(addition.strip())}"

    return f"{text.strip()} + 1"


def decrease(text: str, allow_zero: bool = False) -> str:
    """Step the textual expression down by one.

    A bare integer floors at 1, or at 0 when allow_zero is set. An additive
    expression loses its trailing addend once that reaches 1 or is 0. Dice terms
    without an addend are returned unchanged.
    """
    trimmed = text.strip().lower()
    if is_digits(trimmed):
        n = int(trimmed)
        if n < 2:
            return "0" if allow_zero else "1"
        return str(n - 1)

    if "+" in trimmed:
        head, _, addition = trimmed.rpartition("+")
        addition = addition.strip()
        if addition in ("0", "1"):
            return head.strip()
        return f"{head.strip()} + {decrease(addition)}"

    return text
