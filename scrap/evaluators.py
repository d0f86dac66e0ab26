"""
Defines evaluation functions and the
:py:class:`Evaluator <scrap.evaluators.Evaluator>`
class that they instantiate.
"""
# pyright: reportGeneralTypeIssues=false
from __future__ import annotations

import logging
import typing
from dataclasses import dataclass, replace
from enum import Enum
from functools import partial
from typing import (
    IO,
    Any,
    Callable,
    FrozenSet,
    Iterable,
    Optional,
    Tuple,
    TypeVar,
)

from pytypeclass import Monad, MonadPlus

from scrap.errors import EvaluationError, FlagEvaluationError, ValueEvaluationError
from scrap.help import FlagHelp, HelpCollector, binary_usage
from scrap.result import Result
from scrap.span import Span
from scrap.value import Value
from scrap.value_types import (
    BOOL,
    STRING,
    FileValue,
    FloatValue,
    IntegerValue,
    ValueType,
)

logger = logging.getLogger(__name__)

A_co = TypeVar("A_co", covariant=True)
A = TypeVar("A")
B = TypeVar("B")


class Capability(Enum):
    """
    Marks which combinators may wrap an evaluator. Checked when the tree is built.
    """

    FLAG = "flag"
    DEFAULTABLE = "defaultable"
    OPENABLE = "openable"


FLAG = frozenset({Capability.FLAG})


@dataclass
class Evaluator(MonadPlus[A_co]):
    """
    Main class powering argument evaluation. Every evaluator scans the complete token
    sequence it is given, so flags may appear in any order.
    """

    f: Callable[[typing.Sequence[str]], Result[Value[A_co]]]
    usage: Optional[str] = None
    helps: Tuple[FlagHelp, ...] = ()
    capabilities: FrozenSet[Capability] = frozenset()
    name: Optional[str] = None
    value_type: Optional[ValueType] = None

    def __add__(  # type: ignore[override]
        self, other: "Evaluator[B]"
    ) -> "Evaluator[Tuple[A_co, B]]":
        """
        Sugar for :py:func:`join`. Both evaluators see the whole input:

        >>> from scrap import string_value
        >>> p = string_value("name", "n") + string_value("log-level", "l")
        >>> p.evaluate(["prog", "-n", "foo", "-l", "info"]).unwrap()
        Value(span=Span(indices=(1, 2, 3, 4)), value=('foo', 'info'))
        >>> p.evaluate(["prog", "-l", "info", "-n", "foo"]).unwrap()
        Value(span=Span(indices=(3, 4, 1, 2)), value=('foo', 'info'))

        If either side fails, its error is returned unchanged:

        >>> p.evaluate(["prog", "-n", "foo"]).get
        FlagEvaluationError(usage='The following arguments are required: --log-level', name='log-level')
        """

        def f(b: A_co) -> Evaluator[Tuple[A_co, B]]:
            def g(c: B) -> Evaluator[Tuple[A_co, B]]:
                return Evaluator.return_((b, c))

            return other >= g

        p = self >= f
        return replace(
            p,
            usage=binary_usage(self.usage, " ", other.usage, add_brackets=False),
            helps=self.helps + other.helps,
            capabilities=self.capabilities & other.capabilities & FLAG,
        )

    def __ge__(self, f: Callable[[A_co], Monad[B]]) -> "Evaluator[B]":  # type: ignore[override]
        """Sugar for :py:meth:`Evaluator.bind <scrap.evaluators.Evaluator.bind>`."""
        return self.bind(f)

    def __or__(  # type: ignore[override]
        self,
        other: "Evaluator[B]",
    ) -> "Evaluator[A_co | B]":
        """
        Tries the first evaluator. If it fails, tries the second. If both fail, returns the
        first error.

        >>> from scrap import store_true, store_false
        >>> p = store_true("verbose", "v") | store_false("quiet", "q")
        >>> p.evaluate(["prog", "-q"]).unwrap()
        Value(span=Span(indices=(1,)), value=False)
        """

        def f(cs: typing.Sequence[str]) -> Result[Value["A_co | B"]]:
            return self.evaluate(cs) | other.evaluate(cs)

        return Evaluator(
            f,
            usage=binary_usage(self.usage, " | ", other.usage),
            helps=self.helps + other.helps,
            capabilities=self.capabilities & other.capabilities & FLAG,
        )

    def bind(self, f: Callable[[A_co], Monad[B]]) -> "Evaluator[B]":  # type: ignore[override]
        """
        Returns a new evaluator that

        1. applies ``self``;
        2. if this succeeds, applies ``f`` to the value and evaluates the resulting
           evaluator against the *same* tokens, joining both spans.
        """

        def g(cs: typing.Sequence[str]) -> Result[Value[B]]:
            def h(left: Value[A_co]) -> Result[Value[B]]:
                y = f(left.value)
                assert isinstance(y, Evaluator), y
                return y.evaluate(cs) >= (
                    lambda right: Result.return_(Value(left.span + right.span, right.value))
                )

            return self.evaluate(cs) >= h

        return Evaluator(g, usage=None, helps=self.helps)

    def evaluate(self, cs: typing.Sequence[str]) -> Result[Value[A_co]]:
        """
        Applies the evaluator to the tokens ``cs``.
        """
        return self.f(cs)

    def help(self) -> "FlagHelp | HelpCollector":
        """
        >>> from scrap import string_value
        >>> str(string_value("name", "n", "A name.").help())
        '--name, -n\\tA name.'
        >>> str((string_value("name", "n", "A name.") + string_value("level", "l")).help())
        '\\t--name, -n\\tA name.\\n\\t--level, -l'
        """
        if len(self.helps) == 1:
            (h,) = self.helps
            return h
        return HelpCollector(1, [str(h) for h in self.helps])

    def map(self, f: Callable[[A_co], B]) -> "Evaluator[B]":
        """
        Transforms the value, leaving the span unchanged.

        >>> from scrap import i32_value
        >>> i32_value("timeout", "t").map(lambda t: t * 1000).evaluate(["-t", "3"]).unwrap()
        Value(span=Span(indices=(0, 1)), value=3000)
        """

        def g(cs: typing.Sequence[str]) -> Result[Value[B]]:
            return self.evaluate(cs).map(lambda v: v.map(f))

        return replace(
            self,
            f=g,
            capabilities=self.capabilities & FLAG,
            value_type=None,
        )

    def optional(self) -> "Evaluator[Optional[A_co]]":
        """
        Allows arguments to be optional. Never fails:

        >>> from scrap import string_value
        >>> p = string_value("name", "n").optional()
        >>> p.evaluate(["prog", "-n", "foo"]).unwrap()
        Value(span=Span(indices=(1, 2)), value='foo')
        >>> p.evaluate(["prog", "--misspelled", "foo"]).unwrap()
        Value(span=Span(indices=()), value=None)
        """

        def f(cs: typing.Sequence[str]) -> Result[Value[Optional[A_co]]]:
            result = self.evaluate(cs)
            if result.is_ok:
                return result
            return Result.return_(Value.return_(None))

        return Evaluator(
            f,
            usage=f"[{self.usage}]" if self.usage else None,
            helps=tuple(h.with_modifier("optional") for h in self.helps),
            capabilities=(self.capabilities & FLAG) | {Capability.DEFAULTABLE},
            name=self.name,
        )

    @classmethod
    def return_(cls, a: A_co) -> "Evaluator[A_co]":  # type: ignore[misc]
        """
        Consumes no input and always returns ``a``.

        >>> Evaluator.return_("x").evaluate(["prog"]).unwrap()
        Value(span=Span(indices=()), value='x')
        """

        def f(cs: typing.Sequence[str]) -> Result[Value[A_co]]:
            return Result.return_(Value.return_(a))

        return Evaluator(f, usage=None, helps=())

    def short_help(self) -> str:
        """
        >>> from scrap import string_value, store_true
        >>> (string_value("name", "n") + store_true("debug", "d").optional()).short_help()
        '--name NAME [--debug]'
        """
        return self.usage or ""

    def with_choices(self, choices: Iterable[A_co]) -> "Evaluator[A_co]":
        """
        Fails with :py:exc:`ValueEvaluationError <scrap.errors.ValueEvaluationError>` unless the
        value is one of ``choices``:

        >>> from scrap import string_value
        >>> p = string_value("log-level", "l").with_choices(["info", "warn"])
        >>> p.evaluate(["prog", "-l", "warn"]).unwrap()
        Value(span=Span(indices=(1, 2)), value='warn')
        >>> p.evaluate(["prog", "-l", "trace"]).get
        ValueEvaluationError(usage="argument --log-level: 'trace' is not one of: info, warn", value='trace')

        Defaults applied above ``with_choices`` are not checked against ``choices``:

        >>> p.optional().with_default("trace").evaluate(["prog"]).unwrap()
        Value(span=Span(indices=()), value='trace')

        An absent :py:meth:`optional` value passes through so that it can still be defaulted:

        >>> q = string_value("log-level", "l").optional().with_choices(["info", "warn"])
        >>> q.with_default("info").evaluate(["prog"]).unwrap()
        Value(span=Span(indices=()), value='info')
        """
        _choices = tuple(choices)
        listed = ", ".join(str(c) for c in _choices)
        label = f"--{self.name}" if self.name else "value"
        defaultable = Capability.DEFAULTABLE in self.capabilities

        def check(v: Value[A_co]) -> Result[Value[A_co]]:
            if v.value in _choices or (defaultable and v.value is None):
                return Result.return_(v)
            return Result(
                ValueEvaluationError(
                    f"argument {label}: {v.value!r} is not one of: {listed}",
                    value=v.value,
                )
            )

        def f(cs: typing.Sequence[str]) -> Result[Value[A_co]]:
            return self.evaluate(cs) >= check

        return replace(
            self,
            f=f,
            helps=tuple(h.with_modifier(f"choices: {listed}") for h in self.helps),
        )

    def with_default(
        self: "Evaluator[Optional[A]]", default: A
    ) -> "Evaluator[A]":
        """
        Substitutes ``default`` when the wrapped :py:meth:`optional` evaluator produced
        ``None``:

        >>> from scrap import string_value
        >>> p = string_value("name", "n").optional().with_default("foo")
        >>> p.evaluate(["prog"]).unwrap()
        Value(span=Span(indices=()), value='foo')
        >>> p.evaluate(["prog", "--name", "bar"]).unwrap()
        Value(span=Span(indices=(1, 2)), value='bar')
        >>> str(p.help())
        "--name, -n\\t[(optional), (Default: 'foo')]"
        """
        if Capability.DEFAULTABLE not in self.capabilities:
            raise RuntimeError(
                "with_default can only wrap an optional evaluator. Call .optional() first."
            )

        def f(cs: typing.Sequence[str]) -> Result[Value[A]]:
            return self.evaluate(cs).map(
                lambda v: v.map(lambda x: default if x is None else x)
            )

        return Evaluator(
            f,
            usage=self.usage,
            helps=tuple(h.with_modifier(f"Default: {default!r}") for h in self.helps),
            capabilities=self.capabilities - {Capability.DEFAULTABLE},
            name=self.name,
        )

    def with_open(self: "Evaluator[str]") -> "Evaluator[IO[str]]":
        """
        Opens the validated path produced by a :py:func:`file_value` evaluator. The caller owns
        the returned file object.
        """
        value_type = self.value_type
        if Capability.OPENABLE not in self.capabilities or not isinstance(
            value_type, FileValue
        ):
            raise RuntimeError("with_open can only wrap a file_value evaluator.")
        name = self.name or ""

        def open_(v: Value[str]) -> Result[Value[IO[str]]]:
            logger.debug(f"Opening '{v.value}' for --{name} with mode '{value_type.mode}'")
            try:
                handle = value_type.open(v.value)
            except OSError as e:
                return Result(
                    FlagEvaluationError(
                        f"argument --{name}: unable to open '{v.value}': {e}",
                        name=name,
                    )
                )
            return Result.return_(Value(v.span, handle))

        def f(cs: typing.Sequence[str]) -> Result[Value[IO[str]]]:
            return self.evaluate(cs) >= open_

        return Evaluator(
            f,
            usage=self.usage,
            helps=self.helps,
            capabilities=FLAG,
            name=self.name,
        )

    @classmethod
    def zero(cls, error: Optional[EvaluationError] = None) -> "Evaluator[A_co]":
        """
        This evaluator always fails.

        >>> from scrap.errors import ValueEvaluationError
        >>> Evaluator.zero(ValueEvaluationError("This is a test.", value=None)).evaluate([]).get
        ValueEvaluationError(usage='This is a test.', value=None)
        """
        return Evaluator(lambda _: Result.zero(error=error), usage=None, helps=())


def join(left: Evaluator[A], right: Evaluator[B]) -> Evaluator[Tuple[A, B]]:
    """
    Evaluates ``left`` and then ``right`` against the same tokens, pairing their values.
    See :py:meth:`Evaluator.__add__ <scrap.evaluators.Evaluator.__add__>`.
    """
    return left + right


def optional(evaluator: Evaluator[A]) -> Evaluator[Optional[A]]:
    return evaluator.optional()


def with_default(default: A, evaluator: Evaluator[Optional[A]]) -> Evaluator[A]:
    """
    >>> from scrap import string_value
    >>> with_default("foo", optional(string_value("name", "n"))).evaluate(["prog"]).unwrap()
    Value(span=Span(indices=()), value='foo')
    """
    return evaluator.with_default(default)


def with_choices(choices: Iterable[A], evaluator: Evaluator[A]) -> Evaluator[A]:
    return evaluator.with_choices(choices)


def with_open(evaluator: Evaluator[str]) -> Evaluator[IO[str]]:
    return evaluator.with_open()


def _find_flag(cs: typing.Sequence[str], name: str, short_code: str) -> Optional[int]:
    strings = {f"--{name}"}
    if short_code:
        strings.add(f"-{short_code}")
    return next((i for i, c in enumerate(cs) if c in strings), None)


def _check_flag_names(name: str, short_code: str) -> None:
    if not name:
        raise RuntimeError("Flags require a non-empty name.")
    if len(short_code) > 1:
        raise RuntimeError(
            f"Short codes are a single character. Got '{short_code}' for --{name}."
        )


def _missing(name: str) -> Result[Any]:
    return Result(
        FlagEvaluationError(
            f"The following arguments are required: --{name}", name=name
        )
    )


def boolean_toggle(
    name: str, short_code: str = "", description: str = "", toggle: bool = True
) -> Evaluator[bool]:
    """
    Returns ``toggle`` when the flag is present. Consumes only the flag itself.

    >>> boolean_toggle("debug", "d", toggle=True).evaluate(["prog", "--debug"]).unwrap()
    Value(span=Span(indices=(1,)), value=True)
    >>> boolean_toggle("debug", "d", toggle=True).evaluate(["prog"]).get
    FlagEvaluationError(usage='The following arguments are required: --debug', name='debug')
    """
    _check_flag_names(name, short_code)

    def f(cs: typing.Sequence[str]) -> Result[Value[bool]]:
        i = _find_flag(cs, name, short_code)
        if i is None:
            return _missing(name)
        return Result.return_(Value(Span((i,)), toggle))

    return Evaluator(
        f,
        usage=f"--{name}",
        helps=(FlagHelp(name, short_code, description),),
        capabilities=FLAG,
        name=name,
    )


def store_true(name: str, short_code: str = "", description: str = "") -> Evaluator[bool]:
    """
    >>> store_true("help", "h").optional().with_default(False).evaluate(["prog", "-h"]).unwrap()
    Value(span=Span(indices=(1,)), value=True)
    """
    return boolean_toggle(name, short_code, description, toggle=True)


def store_false(name: str, short_code: str = "", description: str = "") -> Evaluator[bool]:
    return boolean_toggle(name, short_code, description, toggle=False)


def flag_with_value(
    name: str,
    short_code: str = "",
    description: str = "",
    value: ValueType[A] = STRING,
) -> Evaluator[A]:
    """
    Finds the first ``--{name}`` or ``-{short_code}`` token and parses the token after it with
    ``value``.

    Parameters
    ----------
    name : str
        The long name of the flag, matched as ``--{name}``.

    short_code : str
        A single character matched as ``-{short_code}``. Empty to disable the short form.

    description : str
        Shown in help.

    value : ValueType
        Converts the token following the flag.

    Examples
    --------

    >>> from scrap.value_types import I32
    >>> p = flag_with_value("timeout", "t", value=I32)
    >>> p.evaluate(["prog", "extra", "-t", "30"]).unwrap()
    Value(span=Span(indices=(2, 3)), value=30)
    >>> p.evaluate(["prog", "-t", "not-a-number"]).get
    ValueEvaluationError(usage="argument --timeout: invalid digit found in 'not-a-number'", value='not-a-number')
    >>> p.evaluate(["prog", "-t"]).get
    FlagEvaluationError(usage="Expected a value after '-t'.", name='timeout')

    Only the first occurrence of a flag is consumed:

    >>> flag_with_value("name", "n").evaluate(["prog", "-n", "a", "-n", "b"]).unwrap()
    Value(span=Span(indices=(1, 2)), value='a')
    """
    _check_flag_names(name, short_code)

    def f(cs: typing.Sequence[str]) -> Result[Value[A]]:
        i = _find_flag(cs, name, short_code)
        if i is None:
            return _missing(name)
        if i + 1 >= len(cs):
            return Result(
                FlagEvaluationError(f"Expected a value after '{cs[i]}'.", name=name)
            )
        token = cs[i + 1]
        try:
            parsed = value.parse(token)
        except (ValueError, OverflowError) as e:
            return Result(ValueEvaluationError(f"argument --{name}: {e}", value=token))
        return Result.return_(Value(Span((i, i + 1)), parsed))

    capabilities = FLAG | {Capability.OPENABLE} if value.openable else FLAG
    return Evaluator(
        f,
        usage=f"--{name} {name.upper()}",
        helps=(FlagHelp(name, short_code, description),),
        capabilities=capabilities,
        name=name,
        value_type=value,
    )


def string_value(name: str, short_code: str = "", description: str = "") -> Evaluator[str]:
    """
    >>> string_value("name", "n").evaluate(["prog", "--name", "foo"]).unwrap()
    Value(span=Span(indices=(1, 2)), value='foo')
    """
    return flag_with_value(name, short_code, description, value=STRING)


def bool_value(name: str, short_code: str = "", description: str = "") -> Evaluator[bool]:
    return flag_with_value(name, short_code, description, value=BOOL)


def integer_value(
    name: str,
    short_code: str = "",
    description: str = "",
    bits: int = 32,
    signed: bool = True,
) -> Evaluator[int]:
    return flag_with_value(
        name, short_code, description, value=IntegerValue(bits=bits, signed=signed)
    )


def float_value(
    name: str, short_code: str = "", description: str = "", bits: int = 64
) -> Evaluator[float]:
    return flag_with_value(name, short_code, description, value=FloatValue(bits=bits))


i8_value = partial(integer_value, bits=8, signed=True)
i16_value = partial(integer_value, bits=16, signed=True)
i32_value = partial(integer_value, bits=32, signed=True)
i64_value = partial(integer_value, bits=64, signed=True)
u8_value = partial(integer_value, bits=8, signed=False)
u16_value = partial(integer_value, bits=16, signed=False)
u32_value = partial(integer_value, bits=32, signed=False)
u64_value = partial(integer_value, bits=64, signed=False)
f32_value = partial(float_value, bits=32)
f64_value = partial(float_value, bits=64)


def file_value(
    name: str,
    short_code: str = "",
    description: str = "",
    readable: bool = True,
    writable: bool = False,
    must_exist: bool = True,
) -> Evaluator[str]:
    """
    Parses a path to a file, checking it against the given permissions. Combine with
    :py:meth:`Evaluator.with_open` to open it.
    """
    return flag_with_value(
        name,
        short_code,
        description,
        value=FileValue(readable=readable, writable=writable, must_exist=must_exist),
    )
