"""
Defines :py:class:`Cmd <scrap.commands.Cmd>`, :py:class:`OneOf <scrap.commands.OneOf>` and
:py:class:`CmdGroup <scrap.commands.CmdGroup>`, which match command names, evaluate their flags
and dispatch the result to a handler.
"""
from __future__ import annotations

import abc
import logging
import operator
import typing
from dataclasses import dataclass, replace
from functools import reduce
from pathlib import Path
from typing import Any, Callable, Iterator, List, Optional, Tuple, TypeVar

from scrap.either import Either, Left, Right
from scrap.errors import AmbiguousCommandError
from scrap.evaluators import Capability, Evaluator
from scrap.help import CmdHelp, HelpCollector, binary_usage
from scrap.result import Result
from scrap.span import Span
from scrap.value import Value

logger = logging.getLogger(__name__)

A = TypeVar("A")
B = TypeVar("B")
A_co = TypeVar("A_co", covariant=True)


def _evaluate_named(
    name: str,
    cs: typing.Sequence[str],
    evaluate: Callable[[typing.Sequence[str]], Result[Value[A]]],
) -> Result[Value[A]]:
    if not cs:
        return Result(AmbiguousCommandError(f"Expected command '{name}'. Got nothing."))
    head = cs[0]
    if Path(head).name != name:
        logger.debug(f"Command '{name}' does not match '{head}'")
        return Result(AmbiguousCommandError(f"Expected command '{name}'. Got '{head}'."))
    logger.debug(f"Matched command '{name}'")

    def prepend(v: Value[A]) -> Result[Value[A]]:
        return Result.return_(Value(Span((0,)) + v.span.offset(1), v.value))

    return evaluate(cs[1:]) >= prepend


class Dispatchable(abc.ABC, typing.Generic[A_co]):
    """
    Common interface of commands. Two commands combine with ``^`` into a
    :py:class:`OneOf <scrap.commands.OneOf>`.
    """

    def __xor__(self, other: "Dispatchable[B]") -> "OneOf[A_co, B]":
        return OneOf(self, other)

    @abc.abstractmethod
    def alternatives(self) -> Iterator["Dispatchable[Any]"]:
        raise NotImplementedError

    def dispatch(self, value: Value[A_co]) -> Any:
        """
        Calls the handler of the command that produced ``value`` with the evaluated flags.
        """
        cmd, v = self.route(value.value)
        return cmd.call(v)

    def dispatch_with_args(self, args: List[str], value: Value[A_co]) -> Any:
        """
        Like :py:meth:`dispatch` but also passes ``args``, typically the result of
        :py:func:`unused_args <scrap.span.unused_args>`. The handler is called as
        ``handler(args, flags)``.
        """
        cmd, v = self.route(value.value)
        return cmd.call(args, v)

    def dispatch_with_helpstring(self, value: Value[A_co]) -> Any:
        """
        The handler is called as ``handler(help, flags)`` where ``help`` is the rendered help of the
        matched command.
        """
        cmd, v = self.route(value.value)
        return cmd.call(str(cmd.help()), v)

    def dispatch_with_helpstring_and_args(
        self, args: List[str], value: Value[A_co]
    ) -> Any:
        """
        The handler is called as ``handler(help, args, flags)``.
        """
        cmd, v = self.route(value.value)
        return cmd.call(str(cmd.help()), args, v)

    @abc.abstractmethod
    def evaluate(self, cs: typing.Sequence[str]) -> Result[Value[A_co]]:
        raise NotImplementedError

    @abc.abstractmethod
    def help(self) -> "CmdHelp | HelpCollector":
        raise NotImplementedError

    @abc.abstractmethod
    def route(self, value: Any) -> Tuple["Cmd[Any]", Any]:
        """
        Finds the :py:class:`Cmd` whose handler should receive ``value`` and the part of ``value``
        that belongs to it.
        """
        raise NotImplementedError

    @abc.abstractmethod
    def short_help(self) -> str:
        raise NotImplementedError


class _Metadata:
    def with_author(self, author: str):
        return replace(self, author=author)  # type: ignore[type-var]

    def with_description(self, description: str):
        return replace(self, description=description)  # type: ignore[type-var]

    def with_version(self, version: str):
        return replace(self, version=version)  # type: ignore[type-var]


@dataclass
class Cmd(_Metadata, Dispatchable[A_co]):
    """
    A named command. The first token must be the command name (only its file-name component
    is compared, so ``/usr/bin/prog`` matches ``prog``). The remaining tokens are evaluated by
    the command's flags:

    >>> from scrap import Cmd, string_value, store_true
    >>> cmd = (
    ...     Cmd("prog")
    ...     .with_description("Says hello.")
    ...     .with_flag(string_value("name", "n", "A name."))
    ...     .with_flag(store_true("loud", "l").optional().with_default(False))
    ...     .with_handler(lambda flags: f"hello {flags[0]}")
    ... )
    >>> value = cmd.evaluate(["/usr/bin/prog", "-n", "world"]).unwrap()
    >>> value
    Value(span=Span(indices=(0, 1, 2)), value=('world', False))
    >>> cmd.dispatch(value)
    'hello world'
    >>> cmd.evaluate(["other", "-n", "world"]).get
    AmbiguousCommandError(usage="Expected command 'prog'. Got 'other'.")
    >>> cmd.short_help()
    'prog --name NAME [--loud]'
    """

    name: str
    flags: Optional[Evaluator[A_co]] = None
    handler: Optional[Callable[..., Any]] = None
    description: str = ""
    author: str = ""
    version: str = ""

    def alternatives(self) -> Iterator[Dispatchable[Any]]:
        yield self

    def call(self, *args: Any) -> Any:
        if self.handler is None:
            raise RuntimeError(f"No handler was assigned to command '{self.name}'.")
        return self.handler(*args)

    def evaluate(self, cs: typing.Sequence[str]) -> Result[Value[A_co]]:
        flags = Evaluator.return_(None) if self.flags is None else self.flags
        return _evaluate_named(self.name, cs, flags.evaluate)

    def help(self) -> CmdHelp:
        """
        >>> from scrap import Cmd, string_value
        >>> print(Cmd("test").with_description("a test cmd").help())
        test:
        a test cmd
        """
        flags = "" if self.flags is None or not self.flags.helps else str(self.flags.help())
        return CmdHelp(
            name=self.name,
            description=self.description,
            flags=flags,
            author=self.author,
            version=self.version,
        )

    def route(self, value: A_co) -> Tuple["Cmd[Any]", Any]:
        return self, value

    def short_help(self) -> str:
        usage = None if self.flags is None else self.flags.usage
        return binary_usage(self.name, " ", usage, add_brackets=False) or self.name

    def with_flag(self, evaluator: Evaluator[B]) -> "Cmd[Any]":
        """
        Adds a flag. Repeated calls join to the left, so three flags evaluate to
        ``((a, b), c)``.
        """
        if Capability.FLAG not in evaluator.capabilities:
            raise RuntimeError(
                f"Only flag evaluators can be added to command '{self.name}'."
            )
        flags = evaluator if self.flags is None else self.flags + evaluator
        return replace(self, flags=flags)

    def with_handler(self, handler: Callable[..., Any]) -> "Cmd[A_co]":
        return replace(self, handler=handler)


@dataclass
class OneOf(Dispatchable[Either[A, B]]):
    """
    Evaluates both commands against the same input and succeeds only if exactly one of them
    does. The value records which one:

    >>> from scrap import Cmd, string_value
    >>> p = Cmd("add") ^ Cmd("commit").with_flag(string_value("message", "m"))
    >>> p.evaluate(["commit", "-m", "msg"]).unwrap()
    Value(span=Span(indices=(0, 1, 2)), value=Right(value='msg'))
    >>> p.evaluate(["add"]).unwrap()
    Value(span=Span(indices=(0,)), value=Left(value=None))
    >>> p.evaluate(["push"]).is_ok
    False
    >>> (Cmd("add") ^ Cmd("add")).evaluate(["add"]).get
    AmbiguousCommandError(usage="Both 'add' and 'add' matched.")
    """

    left: Dispatchable[A]
    right: Dispatchable[B]

    def __post_init__(self):
        for child in (self.left, self.right):
            if not isinstance(child, Dispatchable):
                raise RuntimeError(
                    f"OneOf combines commands (Cmd, CmdGroup or OneOf). Got {child!r}."
                )

    def alternatives(self) -> Iterator[Dispatchable[Any]]:
        yield from self.left.alternatives()
        yield from self.right.alternatives()

    def evaluate(self, cs: typing.Sequence[str]) -> Result[Value[Either[A, B]]]:
        left = self.left.evaluate(cs)
        right = self.right.evaluate(cs)
        if left.is_ok and right.is_ok:
            logger.debug(
                f"Ambiguous input {list(cs)}: both '{self.left.short_help()}' "
                f"and '{self.right.short_help()}' matched"
            )
            return Result(
                AmbiguousCommandError(
                    f"Both '{self.left.short_help()}' and '{self.right.short_help()}' matched."
                )
            )
        if left.is_ok:
            return left.map(lambda v: v.map(Left))
        if right.is_ok:
            return right.map(lambda v: v.map(Right))
        return Result(AmbiguousCommandError(f"No command matched: {left.get} {right.get}"))

    def help(self) -> HelpCollector:
        return HelpCollector(0, [str(c.help()) for c in self.alternatives()])

    def route(self, value: Either[A, B]) -> Tuple[Cmd[Any], Any]:
        if isinstance(value, Left):
            return self.left.route(value.value)
        if isinstance(value, Right):
            return self.right.route(value.value)
        raise RuntimeError(f"Expected a Left or Right value. Got {value!r}.")

    def short_help(self) -> str:
        return binary_usage(self.left.short_help(), " | ", self.right.short_help()) or ""


def one_of(*commands: Dispatchable[Any]) -> Dispatchable[Any]:
    """
    Combines commands with ``^``, nesting to the left.
    """
    if not commands:
        raise RuntimeError("one_of requires at least one command.")
    return reduce(operator.xor, commands)


@dataclass
class CmdGroup(_Metadata, Dispatchable[A_co]):
    """
    A named group of subcommands. The first token must be the group name; the rest is
    evaluated by the subcommands:

    >>> from scrap import Cmd, CmdGroup, string_value
    >>> group = (
    ...     CmdGroup("git")
    ...     .with_command(Cmd("add").with_handler(lambda _: "add"))
    ...     .with_command(
    ...         Cmd("commit")
    ...         .with_flag(string_value("message", "m"))
    ...         .with_handler(lambda message: f"commit {message}")
    ...     )
    ... )
    >>> value = group.evaluate(["git", "commit", "-m", "msg"]).unwrap()
    >>> value.span
    Span(indices=(0, 1, 2, 3))
    >>> group.dispatch(value)
    'commit msg'
    """

    name: str
    commands: Optional[Dispatchable[A_co]] = None
    description: str = ""
    author: str = ""
    version: str = ""

    def _commands(self) -> Dispatchable[A_co]:
        if self.commands is None:
            raise RuntimeError(
                f"You must assign commands to CmdGroup '{self.name}' in order to evaluate it."
            )
        return self.commands

    def alternatives(self) -> Iterator[Dispatchable[Any]]:
        yield self

    def evaluate(self, cs: typing.Sequence[str]) -> Result[Value[A_co]]:
        return _evaluate_named(self.name, cs, self._commands().evaluate)

    def help(self) -> CmdHelp:
        """
        >>> from scrap import Cmd, CmdGroup
        >>> group = CmdGroup("git", description="vcs").with_command(Cmd("add")).with_command(Cmd("rm"))
        >>> str(group.help())
        'git:\\nvcs\\n\\tadd\\n\\trm'
        """
        subcommands = [c.short_help() for c in self._commands().alternatives()]
        return CmdHelp(
            name=self.name,
            description=self.description,
            flags=str(HelpCollector(1, subcommands)),
            author=self.author,
            version=self.version,
        )

    def route(self, value: A_co) -> Tuple[Cmd[Any], Any]:
        return self._commands().route(value)

    def short_help(self) -> str:
        commands = None if self.commands is None else self.commands.short_help()
        return binary_usage(self.name, " ", commands, add_brackets=False) or self.name

    def with_command(self, command: Dispatchable[Any]) -> "CmdGroup[Any]":
        if not isinstance(command, Dispatchable):
            raise RuntimeError(
                f"CmdGroup '{self.name}' only accepts commands. Got {command!r}."
            )
        commands = command if self.commands is None else self.commands ^ command
        return replace(self, commands=commands)
