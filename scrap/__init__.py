from scrap.commands import Cmd, CmdGroup, Dispatchable, OneOf, one_of
from scrap.either import Either, Left, Right
from scrap.errors import (
    AmbiguousCommandError,
    EvaluationError,
    FlagEvaluationError,
    ValueEvaluationError,
)
from scrap.evaluators import (
    Capability,
    Evaluator,
    bool_value,
    boolean_toggle,
    f32_value,
    f64_value,
    file_value,
    flag_with_value,
    float_value,
    i8_value,
    i16_value,
    i32_value,
    i64_value,
    integer_value,
    join,
    optional,
    store_false,
    store_true,
    string_value,
    u8_value,
    u16_value,
    u32_value,
    u64_value,
    with_choices,
    with_default,
    with_open,
)
from scrap.help import CmdHelp, FlagHelp, HelpCollector
from scrap.result import Result
from scrap.span import Span, unused_args
from scrap.value import Value

__all__ = [
    "Evaluator",
    "Capability",
    "flag_with_value",
    "boolean_toggle",
    "store_true",
    "store_false",
    "string_value",
    "bool_value",
    "integer_value",
    "float_value",
    "i8_value",
    "i16_value",
    "i32_value",
    "i64_value",
    "u8_value",
    "u16_value",
    "u32_value",
    "u64_value",
    "f32_value",
    "f64_value",
    "file_value",
    "join",
    "optional",
    "with_default",
    "with_choices",
    "with_open",
    "Cmd",
    "CmdGroup",
    "Dispatchable",
    "OneOf",
    "one_of",
    "Either",
    "Left",
    "Right",
    "EvaluationError",
    "AmbiguousCommandError",
    "FlagEvaluationError",
    "ValueEvaluationError",
    "CmdHelp",
    "FlagHelp",
    "HelpCollector",
    "Result",
    "Span",
    "unused_args",
    "Value",
]
