"""
Defines :py:class:`Span <scrap.span.Span>`, the ordered record of token indices consumed by
an evaluator, and :py:func:`unused_args <scrap.span.unused_args>`.
"""
from __future__ import annotations

import typing
from dataclasses import dataclass
from typing import Generator, List, Tuple, Type, overload

from pytypeclass import Monoid


@dataclass
class Span(Monoid[int], typing.Sequence[int]):
    """
    An ordered sequence of token indices. Spans combine by concatenation, so
    order is preserved and duplicates are kept:

    >>> from scrap.span import Span
    >>> s = Span((1, 2))
    >>> len(s)
    2
    >>> s[0]
    1
    >>> s + Span((4, 1))
    Span(indices=(1, 2, 4, 1))
    >>> 4 in s
    False
    >>> s.offset(1)
    Span(indices=(2, 3))
    """

    indices: Tuple[int, ...] = ()

    def __post_init__(self):
        if any(i < 0 for i in self.indices):
            raise ValueError(f"Span indices must be non-negative. Got {self.indices}")

    @overload
    def __getitem__(self, i: int) -> int:
        ...

    @overload
    def __getitem__(self, i: slice) -> "Span":
        ...

    def __getitem__(self, i: "int | slice") -> "int | Span":
        if isinstance(i, int):
            return self.indices[i]
        return Span(self.indices[i])

    def __iter__(self) -> Generator[int, None, None]:
        yield from self.indices

    def __len__(self) -> int:
        return len(self.indices)

    def __or__(self, other: "Span") -> "Span":  # type: ignore[override]
        return Span((*self, *other))

    def __add__(self, other: "Span") -> "Span":
        return self | other

    def join(self, other: "Span") -> "Span":
        return self | other

    @classmethod
    def from_range(cls: Type["Span"], start: int, stop: int) -> "Span":
        """
        >>> Span.from_range(1, 3)
        Span(indices=(1, 2))
        """
        return cls(tuple(range(start, stop)))

    def offset(self, n: int) -> "Span":
        """
        Shifts every index by ``n``. Used when an evaluator ran on a suffix of the
        original tokens.
        """
        return Span(tuple(i + n for i in self))

    @classmethod
    def zero(cls: Type["Span"]) -> "Span":
        return cls(())


def unused_args(tokens: typing.Sequence[str], span: Span) -> List[str]:
    """
    Returns the tokens whose indices do not appear in ``span``, in their original order.

    >>> unused_args(["prog", "-n", "foo", "extra"], Span((0, 1, 2)))
    ['extra']
    >>> unused_args(["prog", "a", "b"], Span.zero())
    ['prog', 'a', 'b']
    """
    consumed = set(span)
    return [token for i, token in enumerate(tokens) if i not in consumed]
