"""
Plain-text help contexts rendered from an evaluator tree.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import List, Optional, Tuple


def binary_usage(a: Optional[str], op: str, b: Optional[str], add_brackets=True):
    """
    Utility for generating usage strings for binary operators.
    """
    no_nones = [x for x in (a, b) if x]
    usage = op.join(no_nones)
    if len(no_nones) > 1 and add_brackets:
        usage = f"[{usage}]"
    return usage or None


@dataclass
class FlagHelp:
    """
    Help for a single flag.

    >>> str(FlagHelp("name", "n", "A name."))
    '--name, -n\\tA name.'
    >>> str(FlagHelp("name", "n", "A name.").with_modifier("optional"))
    '--name, -n\\tA name.\\t[(optional)]'
    """

    name: str
    short_code: str = ""
    description: str = ""
    modifiers: Tuple[str, ...] = ()

    def with_modifier(self, modifier: str) -> "FlagHelp":
        return replace(self, modifiers=(*self.modifiers, modifier))

    def __str__(self) -> str:
        s = f"--{self.name}"
        if self.short_code:
            s += f", -{self.short_code}"
        if self.description:
            s += f"\t{self.description}"
        if self.modifiers:
            modifiers = ", ".join(f"({m})" for m in self.modifiers)
            s += f"\t[{modifiers}]"
        return s


@dataclass
class HelpCollector:
    """
    Renders a list of help strings, each indented by ``tab_depth`` tabs.

    >>> str(HelpCollector(1, ["--a", "--b"]))
    '\\t--a\\n\\t--b'
    """

    tab_depth: int
    inner: List[str] = field(default_factory=list)

    def __str__(self) -> str:
        tabs = "\t" * self.tab_depth
        return "\n".join(f"{tabs}{h}" for h in self.inner)


@dataclass
class CmdHelp:
    """
    >>> print(CmdHelp("test", "a test cmd", "--name, -n"))
    test:
    a test cmd
    --name, -n
    """

    name: str
    description: str
    flags: str = ""
    author: str = ""
    version: str = ""

    def __str__(self) -> str:
        header = self.name if not self.version else f"{self.name} {self.version}"
        lines = [f"{header}:", self.description]
        if self.author:
            lines.append(self.author)
        if self.flags:
            lines.append(self.flags)
        return "\n".join(lines)
