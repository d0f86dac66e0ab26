"""
Defines the :py:class:`Result <scrap.result.Result>` dataclass, representing success or failure,
output by evaluators.
"""
from dataclasses import dataclass
from typing import Callable, Optional, Type, TypeVar

from pytypeclass import Monad, MonadPlus

from scrap.errors import AmbiguousCommandError, EvaluationError

A_co = TypeVar("A_co", covariant=True)
A = TypeVar("A")
B = TypeVar("B")


@dataclass
class Result(MonadPlus[A_co]):
    """
    Holds either a successful output or the :py:exc:`EvaluationError <scrap.errors.EvaluationError>`
    that prevented it.

    >>> from scrap.result import Result
    >>> from scrap.errors import ValueEvaluationError
    >>> Result.return_(1) >= (lambda x: Result.return_(x + 1))
    Result(get=2)
    >>> failure = Result(ValueEvaluationError("bad value", value="x"))
    >>> (failure >= (lambda x: Result.return_(x + 1))).is_ok
    False
    >>> (failure | Result.return_(3)).get
    3
    """

    get: "A_co | EvaluationError"

    def __ge__(self, f: Callable[[A_co], Monad[B]]) -> "Result[B]":  # type: ignore[override]
        return self.bind(f)

    def __or__(self, other: "Result[B]") -> "Result[A_co | B]":  # type: ignore[override]
        """
        Returns the first success. If both fail, returns the first failure.
        """
        for result in (self, other):
            if result.is_ok:
                return result
        return self

    def bind(self, f: Callable[[A_co], Monad[B]]) -> "Result[B]":  # type: ignore[override]
        x = self.get
        if isinstance(x, EvaluationError):
            return Result(x)
        y = f(x)
        assert isinstance(y, Result), y
        return y

    @property
    def is_ok(self) -> bool:
        return not isinstance(self.get, EvaluationError)

    def map(self, f: Callable[[A_co], B]) -> "Result[B]":
        return self >= (lambda x: Result.return_(f(x)))

    def map_error(self, f: Callable[[EvaluationError], EvaluationError]) -> "Result[A_co]":
        x = self.get
        if isinstance(x, EvaluationError):
            return Result(f(x))
        return self

    @classmethod
    def return_(cls: "Type[Result[A]]", a: A) -> "Result[A]":  # type: ignore[override]
        return Result(a)

    def unwrap(self) -> A_co:
        """
        Returns the successful output or raises the error.

        >>> Result.return_("foo").unwrap()
        'foo'
        >>> Result.zero().unwrap()
        Traceback (most recent call last):
        ...
        scrap.errors.AmbiguousCommandError: No alternative succeeded.
        """
        x = self.get
        if isinstance(x, EvaluationError):
            raise x
        return x

    @classmethod
    def zero(cls, error: Optional[EvaluationError] = None) -> "Result[A_co]":  # type: ignore[override]
        return Result(
            AmbiguousCommandError("No alternative succeeded.")
            if error is None
            else error
        )
