from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

_SPLIT_RE = re.compile(r"[,\s]+")


def parse_disabled_tools(raw: Optional[str]) -> List[str]:
    """Split a comma- and/or whitespace-separated tool list; blanks are dropped."""
    return [x for x in _SPLIT_RE.split(raw or "") if x]


@dataclass(frozen=True)
class ToolPolicy:
    disabled_tools: Tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_list(cls, names: Iterable[str]) -> "ToolPolicy":
        return cls(disabled_tools=tuple(names))

    def is_disabled(self, tool: str) -> bool:
        t = (tool or "").strip().lower()
        return any(t == d.lower() for d in self.disabled_tools)

    def disabled(self) -> List[str]:
        return list(self.disabled_tools)
