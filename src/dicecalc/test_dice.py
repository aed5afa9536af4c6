import random

import pytest

from dicecalc.dice import Constant, Random, Combined, D6, ceiling, parse, increase, decrease
from dicecalc.errors import ParseError


def test_constant_always_evaluates_to_itself(scripted):
    rng = scripted(3)
    for n in (0, 1, 7, 1000):
        assert Constant(n).evaluate(rng) == n
    assert rng.calls == 0


def test_random_stays_in_range():
    rng = random.Random(1234)
    for low, high in [(1, 6), (1, 3), (2, 5), (4, 4)]:
        draws = [Random(low, high).evaluate(rng) for _ in range(500)]
        assert min(draws) >= low
        assert max(draws) <= high


def test_same_value_draws_independently(scripted):
    rng = scripted(2, 5)
    assert D6.evaluate(rng) == 2
    assert D6.evaluate(rng) == 5


def test_combined_sums_children(scripted):
    value = Combined((Random(1, 6), Constant(2), Random(1, 3)))
    assert value.evaluate(scripted(3)) == 3 + 2 + 3
    assert value.max_value() == 11


def test_parse_dice():
    value = parse("3d6")
    assert value == Combined((Random(1, 6), Random(1, 6), Random(1, 6)))
    assert value.max_value() == 18


def test_parse_additive():
    value = parse("2d6 + 1")
    assert value == Combined((Combined((Random(1, 6), Random(1, 6))), Constant(1)))
    assert value.max_value() == 13


@pytest.mark.parametrize("text,expected", [
    ("4", Constant(4)),
    (" 12 ", Constant(12)),
    ("d6", Random(1, 6)),
    ("D3", Random(1, 3)),
    ("1d6", Combined((Random(1, 6),))),
    ("0d6", Combined(())),
    ("d3+3", Combined((Random(1, 3), Constant(3)))),
])
def test_parse_shapes(text, expected):
    assert parse(text) == expected


@pytest.mark.parametrize("text", ["", "abc", "2d", "d", "xd6", "2d6d6", "1 +", "+", "2d0", "-1", "1.5"])
def test_parse_rejects(text):
    with pytest.raises(ParseError):
        parse(text)


def test_parse_error_keeps_text():
    with pytest.raises(ParseError) as e:
        parse("2x6")
    assert e.value.text == "2x6"
    assert isinstance(e.value, ValueError)


def test_max_value_draws_nothing(scripted):
    rng = scripted(1)
    assert parse("2d6 + d3 + 4").max_value() == 19
    assert rng.calls == 0


def test_str_renders_notation():
    assert str(parse("2d6 + 1")) == "2d6 + 1"
    assert str(parse("d3")) == "d3"
    assert str(parse("7")) == "7"


@pytest.mark.parametrize("text,expected", [
    ("1", "2"),
    ("9", "10"),
    ("d6", "d6 + 1"),
    ("2d6 + 1", "2d6 + 2"),
    ("d6 + d3 + 2", "d6 + d3 + 3"),
])
def test_increase(text, expected):
    assert increase(text) == expected


@pytest.mark.parametrize("text,allow_zero,expected", [
    ("5", False, "4"),
    ("2", False, "1"),
    ("1", False, "1"),
    ("1", True, "0"),
    ("0", True, "0"),
    ("0", False, "1"),
    ("2d6 + 3", False, "2d6 + 2"),
    ("2d6 + 1", False, "2d6"),
    ("d6 + d3 + 2", False, "d6 + d3 + 1"),
    ("d6", False, "d6"),
    ("2d6 + 0", False, "2d6"),
    ("2d6 + 0", True, "2d6"),
])
def test_decrease(text, allow_zero, expected):
    assert decrease(text, allow_zero) == expected


@pytest.mark.parametrize("text", ["3", "d6", "2d6", "2d6 + 1", "d6 + d3 + 2", "0d6", " 3D3 "])
def test_ceiling_matches_parsed_max(text):
    assert ceiling(text) == parse(text).max_value()


def test_ceiling_does_not_expand_counts():
    assert ceiling("3000000000d6") == 18_000_000_000


@pytest.mark.parametrize("text", ["", "x", "2d", "d0", "1d2d3", "-1"])
def test_ceiling_rejects_what_parse_rejects(text):
    with pytest.raises(ParseError):
        ceiling(text)
