import string
import sys
from random import Random
from typing import List, NamedTuple, Tuple

from hypothesis import given, register_random, settings
from hypothesis import strategies as st

from scrap import (
    Span,
    ValueEvaluationError,
    join,
    optional,
    string_value,
    u8_value,
    with_choices,
    with_default,
)

MAX_FILLER = 4

st_name = st.text(alphabet=string.ascii_lowercase, min_size=2, max_size=8)
st_word = st.text(alphabet=string.ascii_letters + string.digits, min_size=1, max_size=8)
st_names = st.lists(st_name, min_size=2, max_size=2, unique=True)


class StInput(NamedTuple):
    names: List[str]
    values: List[str]
    tokens: List[str]


@st.composite
def st_input(draw) -> StInput:
    """
    Two ``--name value`` pairs shuffled among words that are never flags.
    """
    names = draw(st_names)
    values = [draw(st_word) for _ in names]
    filler = draw(st.lists(st_word, max_size=MAX_FILLER))
    groups = [[f"--{n}", v] for n, v in zip(names, values)] + [[w] for w in filler]
    groups = draw(st.permutations(groups))
    return StInput(names, values, ["prog", *[t for g in groups for t in g]])


def flag_indices(tokens: List[str], name: str) -> Tuple[int, int]:
    i = tokens.index(f"--{name}")
    return i, i + 1


@settings(deadline=2000)
@given(st_input())
def test_join_span_is_sum_of_spans(inp: StInput):
    a, b = (string_value(n) for n in inp.names)
    left = a.evaluate(inp.tokens).unwrap()
    right = b.evaluate(inp.tokens).unwrap()
    joined = join(a, b).evaluate(inp.tokens).unwrap()
    assert joined.span == left.span + right.span
    first, second = (flag_indices(inp.tokens, n) for n in inp.names)
    assert joined.span == Span((*first, *second))


@settings(deadline=2000)
@given(st_input())
def test_join_ignores_order(inp: StInput):
    a, b = (string_value(n) for n in inp.names)
    assert join(a, b).evaluate(inp.tokens).unwrap().value == tuple(inp.values)


@settings(deadline=2000)
@given(st_name, st.lists(st.text(), max_size=6))
def test_optional_never_fails(name: str, tokens: List[str]):
    p = optional(u8_value(name, name[0]))
    result = p.evaluate(["prog", *tokens])
    assert result.is_ok
    v = result.unwrap()
    if v.value is None:
        assert v.span == Span()


@settings(deadline=2000)
@given(st_name, st_word, st.lists(st.text(), max_size=6))
def test_default_replaces_failure(name: str, default: str, tokens: List[str]):
    e = string_value(name)
    tokens = ["prog", *tokens]
    child = e.evaluate(tokens)
    v = with_default(default, optional(e)).evaluate(tokens).unwrap()
    if child.is_ok:
        assert v == child.unwrap()
    else:
        assert v.value == default
        assert v.span == Span()


@settings(deadline=2000)
@given(st_name, st_word, st.lists(st_word, max_size=4))
def test_choices(name: str, token: str, choices: List[str]):
    tokens = ["prog", "x", f"--{name}", token]
    result = with_choices(choices, string_value(name)).evaluate(tokens)
    if token in choices:
        assert result.unwrap() == string_value(name).evaluate(tokens).unwrap()
    else:
        assert isinstance(result.get, ValueEvaluationError)
        assert result.get.value == token


@settings(deadline=2000)
@given(st.integers(min_value=-1000, max_value=1000))
def test_u8_range(n: int):
    result = u8_value("byte", "b").evaluate(["prog", "-b", str(n)])
    assert result.is_ok == (0 <= n <= 255)


if __name__ == "__main__":
    register_random(Random(0))

    tests = {
        "span": test_join_span_is_sum_of_spans,
        "order": test_join_ignores_order,
        "optional": test_optional_never_fails,
        "default": test_default_replaces_failure,
        "choices": test_choices,
        "range": test_u8_range,
    }
    for key in sys.argv[1:] or tests:
        tests[key]()
