"""
Defines :py:class:`Left` and :py:class:`Right`, which record which alternative of a
:py:class:`OneOf <scrap.commands.OneOf>` succeeded.
"""
from dataclasses import dataclass
from typing import Generic, TypeVar, Union

A_co = TypeVar("A_co", covariant=True)
B_co = TypeVar("B_co", covariant=True)


@dataclass
class Left(Generic[A_co]):
    value: A_co


@dataclass
class Right(Generic[B_co]):
    value: B_co


Either = Union[Left[A_co], Right[B_co]]
