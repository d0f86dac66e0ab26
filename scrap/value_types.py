"""
Defines the value types used by :py:func:`flag_with_value <scrap.evaluators.flag_with_value>` to
convert the token following a flag into a typed value.

A value type's ``parse`` method raises :external:py:exc:`ValueError` on tokens outside its
grammar. Evaluators convert that into a
:py:exc:`ValueEvaluationError <scrap.errors.ValueEvaluationError>`.
"""
from __future__ import annotations

import abc
import math
import os
import re
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Generic, TypeVar

ENCODING = os.environ.get("SCRAP_ENCODING", "utf-8")

A_co = TypeVar("A_co", covariant=True)

_SIGNED = re.compile(r"[+-]?[0-9]+")
_UNSIGNED = re.compile(r"\+?[0-9]+")


class ValueType(abc.ABC, Generic[A_co]):
    openable = False

    @property
    @abc.abstractmethod
    def metavar(self) -> str:
        raise NotImplementedError

    @abc.abstractmethod
    def parse(self, token: str) -> A_co:
        raise NotImplementedError


@dataclass(frozen=True)
class StringValue(ValueType[str]):
    """
    >>> StringValue().parse("info")
    'info'
    """

    @property
    def metavar(self) -> str:
        return "str"

    def parse(self, token: str) -> str:
        return token


@dataclass(frozen=True)
class BoolValue(ValueType[bool]):
    """
    >>> BoolValue().parse("false")
    False
    >>> BoolValue().parse("yes")
    Traceback (most recent call last):
    ...
    ValueError: expected 'true' or 'false', got 'yes'
    """

    @property
    def metavar(self) -> str:
        return "bool"

    def parse(self, token: str) -> bool:
        if token == "true":
            return True
        if token == "false":
            return False
        raise ValueError(f"expected 'true' or 'false', got '{token}'")


@dataclass(frozen=True)
class IntegerValue(ValueType[int]):
    """
    A fixed-width integer. Accepts an optional sign followed by ASCII digits. Unsigned
    types only accept ``+``.

    >>> IntegerValue(bits=8, signed=True).parse("-128")
    -128
    >>> IntegerValue(bits=8, signed=False).parse("+255")
    255
    >>> IntegerValue(bits=8, signed=False).parse("256")
    Traceback (most recent call last):
    ...
    ValueError: 256 is out of range for u8
    >>> IntegerValue(bits=32, signed=True).parse("1_000")
    Traceback (most recent call last):
    ...
    ValueError: invalid digit found in '1_000'
    """

    bits: int
    signed: bool

    @property
    def metavar(self) -> str:
        return f"{'i' if self.signed else 'u'}{self.bits}"

    @property
    def bounds(self):
        if self.signed:
            return -(2 ** (self.bits - 1)), 2 ** (self.bits - 1) - 1
        return 0, 2**self.bits - 1

    def parse(self, token: str) -> int:
        grammar = _SIGNED if self.signed else _UNSIGNED
        if not grammar.fullmatch(token):
            raise ValueError(f"invalid digit found in '{token}'")
        n = int(token)
        low, high = self.bounds
        if not low <= n <= high:
            raise ValueError(f"{n} is out of range for {self.metavar}")
        return n


@dataclass(frozen=True)
class FloatValue(ValueType[float]):
    """
    A floating point number of the given width. Single precision values are rounded and
    finite values beyond its range are rejected.

    >>> FloatValue(bits=64).parse("1e3")
    1000.0
    >>> FloatValue(bits=32).parse("0.1")
    0.10000000149011612
    >>> FloatValue(bits=32).parse("1e39")
    Traceback (most recent call last):
    ...
    ValueError: 1e39 is out of range for f32
    >>> FloatValue(bits=64).parse(" 1.0")
    Traceback (most recent call last):
    ...
    ValueError: invalid float literal ' 1.0'
    """

    bits: int = 64

    @property
    def metavar(self) -> str:
        return f"f{self.bits}"

    def parse(self, token: str) -> float:
        if not token.isascii() or token != token.strip() or "_" in token:
            raise ValueError(f"invalid float literal '{token}'")
        x = float(token)
        if self.bits == 32 and math.isfinite(x):
            try:
                (x,) = struct.unpack("f", struct.pack("f", x))
            except OverflowError:
                raise ValueError(f"{token} is out of range for f32")
            if math.isinf(x):
                raise ValueError(f"{token} is out of range for f32")
        return x


@dataclass(frozen=True)
class FileValue(ValueType[str]):
    """
    A path to a file, validated against the configured permissions before it is accepted.

    Parameters
    ----------

    readable : bool
        The file must be readable.

    writable : bool
        The file must be writable. For a file that does not exist yet, its parent directory
        must be writable.

    must_exist : bool
        The path must name an existing regular file.
    """

    readable: bool = True
    writable: bool = False
    must_exist: bool = True
    openable = True

    @property
    def metavar(self) -> str:
        return "path"

    def parse(self, token: str) -> str:
        try:
            return self._check(token)
        except OSError as e:
            raise ValueError(f"cannot access '{token}': {e}")

    def _check(self, token: str) -> str:
        path = Path(token)
        exists = path.exists()
        if self.must_exist and not exists:
            raise ValueError(f"no such file: '{token}'")
        if exists and not path.is_file():
            raise ValueError(f"not a regular file: '{token}'")
        if self.readable and exists and not os.access(path, os.R_OK):
            raise ValueError(f"file is not readable: '{token}'")
        if self.writable:
            target = path if exists else path.parent
            if not os.access(target, os.W_OK):
                raise ValueError(f"file is not writable: '{token}'")
        return token

    @property
    def mode(self) -> str:
        if self.readable and self.writable:
            return "r+"
        if self.writable:
            return "w"
        return "r"

    def open(self, path: str) -> IO[str]:
        """
        Opens ``path`` without truncating it. The file is created when ``must_exist`` is false.
        """
        if self.readable and self.writable:
            flags = os.O_RDWR
        elif self.writable:
            flags = os.O_WRONLY
        else:
            flags = os.O_RDONLY
        if not self.must_exist:
            flags |= os.O_CREAT
        fd = os.open(path, flags, 0o644)
        try:
            return os.fdopen(fd, self.mode, encoding=ENCODING)
        except Exception:
            os.close(fd)
            raise


STRING = StringValue()
BOOL = BoolValue()
I8 = IntegerValue(bits=8, signed=True)
I16 = IntegerValue(bits=16, signed=True)
I32 = IntegerValue(bits=32, signed=True)
I64 = IntegerValue(bits=64, signed=True)
U8 = IntegerValue(bits=8, signed=False)
U16 = IntegerValue(bits=16, signed=False)
U32 = IntegerValue(bits=32, signed=False)
U64 = IntegerValue(bits=64, signed=False)
F32 = FloatValue(bits=32)
F64 = FloatValue(bits=64)
