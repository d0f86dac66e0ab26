"""
Defines :py:class:`Value <scrap.value.Value>`, the output of a successful evaluation: a value
paired with the :py:class:`Span <scrap.span.Span>` of tokens that produced it.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Tuple, Type, TypeVar

from pytypeclass import Monad

from scrap.span import Span

A_co = TypeVar("A_co", covariant=True)
A = TypeVar("A")
B = TypeVar("B")


@dataclass
class Value(Monad[A_co]):
    """
    A ``Value`` is the output of evaluation.

    Parameters
    ----------

    span : Span
        The indices of the tokens inspected to produce ``value``

    value : A
        The evaluated value

    Binding a ``Value`` joins the spans of both values:

    >>> from scrap.value import Value
    >>> from scrap.span import Span
    >>> Value(Span((1,)), "a") >= (lambda a: Value(Span((2, 3)), a + "b"))
    Value(span=Span(indices=(1, 2, 3)), value='ab')
    """

    span: Span
    value: A_co

    def __ge__(self, f: Callable[[A_co], Monad[B]]) -> "Value[B]":  # type: ignore[override]
        return self.bind(f)

    def bind(self, f: Callable[[A_co], Monad[B]]) -> "Value[B]":  # type: ignore[override]
        y = f(self.value)
        assert isinstance(y, Value), y
        return Value(self.span + y.span, y.value)

    def join(self, other: "Value[B]") -> "Value[Tuple[A_co, B]]":
        """
        Pairs two values, concatenating their spans in order.

        >>> Value(Span((1, 2)), "foo").join(Value(Span((3, 4)), "info"))
        Value(span=Span(indices=(1, 2, 3, 4)), value=('foo', 'info'))
        """
        return Value(self.span + other.span, (self.value, other.value))

    def map(self, f: Callable[[A_co], B]) -> "Value[B]":
        return Value(self.span, f(self.value))

    def offset(self, n: int) -> "Value[A_co]":
        """
        >>> Value(Span((0, 1)), True).offset(1)
        Value(span=Span(indices=(1, 2)), value=True)
        """
        return Value(self.span.offset(n), self.value)

    @classmethod
    def return_(cls: Type["Value[A]"], a: A) -> "Value[A]":  # type: ignore[override]
        """
        Wraps ``a`` without consuming any tokens.

        >>> Value.return_(3)
        Value(span=Span(indices=()), value=3)
        """
        return Value(Span.zero(), a)

    def unwrap(self) -> A_co:
        return self.value
