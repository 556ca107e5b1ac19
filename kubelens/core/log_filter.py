"""
Grep-like filtering for pod logs.

Semantics:
- include patterns: a line is kept if it matches ANY of them (grep -e a -e b);
  no include patterns keeps every line
- exclude patterns: a kept line is dropped if it matches ANY of them (grep -v),
  applied after inclusion
- literal mode: case-sensitive substring match
- regex mode: unanchored search anywhere in the line (like grep -E)

Regex patterns are compiled by validate_filter_spec before any line is touched, so a
bad pattern fails the request instead of producing partial output.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from kubelens.core.errors import InvalidPatternError
from kubelens.core.models import FilterSpec

Matcher = Callable[[str], bool]


@dataclass(frozen=True)
class CompiledFilter:
    include: Tuple[Matcher, ...]
    exclude: Tuple[Matcher, ...]

    def keep(self, line: str) -> bool:
        if self.include and not any(m(line) for m in self.include):
            return False
        return not any(m(line) for m in self.exclude)


def _compile_one(pattern: str, source: str) -> Matcher:
    try:
        rx = re.compile(pattern)
    except re.error as e:
        raise InvalidPatternError(pattern, source, str(e)) from e
    return lambda line: rx.search(line) is not None


def _literal(pattern: str) -> Matcher:
    return lambda line: pattern in line


def _compile_all(patterns: Sequence[str], source: str, use_regex: bool) -> Tuple[Matcher, ...]:
    if use_regex:
        return tuple(_compile_one(p, source) for p in patterns)
    return tuple(_literal(p) for p in patterns)


def validate_filter_spec(spec: Optional[FilterSpec]) -> CompiledFilter:
    """
    Validate `spec` and return its compiled form.

    In regex mode every include pattern is compiled, then every exclude pattern;
    the first failure is raised.

    Raises:
        InvalidPatternError: naming the pattern and whether it was include or exclude.
    """
    if spec is None:
        return CompiledFilter(include=(), exclude=())
    include = _compile_all(spec.include, "include", spec.use_regex)
    exclude = _compile_all(spec.exclude, "exclude", spec.use_regex)
    return CompiledFilter(include=include, exclude=exclude)


def split_lines(content: str) -> List[str]:
    """Split on newlines, dropping only the empty tail left by a trailing newline."""
    lines = content.split("\n")
    if len(lines) > 1 and lines[-1] == "":
        lines.pop()
    return lines


def filter_lines(content: str, spec: Optional[FilterSpec]) -> str:
    """
    Apply `spec` to `content` line by line and rejoin the survivors with newlines.

    Interior blank lines are kept (subject to the patterns). An empty result is "".

    Raises:
        InvalidPatternError: if `spec` has not been validated and contains a bad regex.
    """
    if spec is None:
        return content
    compiled = validate_filter_spec(spec)
    return "\n".join(line for line in split_lines(content) if compiled.keep(line))


def count_matching_lines(content: str, spec: Optional[FilterSpec]) -> int:
    """Number of lines in filter_lines(content, spec); an empty result counts as 0."""
    filtered = filter_lines(content, spec)
    if filtered == "":
        return 0
    return len(filtered.split("\n"))
