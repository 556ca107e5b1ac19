"""Read-only tool surface over the query core (dispatch + catalog)."""

from kubelens.tools.tools import TOOL_NAMES, ToolResult, run_tool

__all__ = ["TOOL_NAMES", "ToolResult", "run_tool"]
