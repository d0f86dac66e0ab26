"""
Defines errors which can be returned by evaluators.
"""
from dataclasses import dataclass
from typing import Any


@dataclass
class EvaluationError(Exception):
    usage: str

    def __str__(self) -> str:
        return self.usage


@dataclass
class AmbiguousCommandError(EvaluationError):
    pass


@dataclass
class FlagEvaluationError(EvaluationError):
    name: str


@dataclass
class ValueEvaluationError(EvaluationError):
    value: Any
