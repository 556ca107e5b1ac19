#!/usr/bin/env python3
"""
kubelens - read-only Kubernetes query front-end.

Serve the HTTP tool API, or call a single tool from the shell.
"""

import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s", stream=sys.stderr
)

#
# NOTE: Keep kubelens imports lazy (inside functions) so `--help` never loads the
# kubernetes client.
#


def parse_tool_args(pairs: Optional[List[str]], tool: Optional[str] = None) -> Dict[str, Any]:
    """
    Turn repeated `--arg key=value` pairs into a tool argument dict.

    Values stay strings, except for parameters the tool's catalog entry declares as
    integer or boolean; those are passed through typed when they parse. String
    parameters (patterns, names, selectors) are never reinterpreted.
    """
    from kubelens.tools.catalog import get_tool_spec

    spec = get_tool_spec(tool or "")
    types = {p.name: p.type for p in spec.params} if spec else {}

    out: Dict[str, Any] = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ValueError(f"expected key=value, got {pair!r}")
        out[key] = _coerce(value, types.get(key))
    return out


def _coerce(value: str, param_type: Optional[str]) -> Any:
    if param_type == "integer":
        try:
            return int(value)
        except ValueError:
            return value
    if param_type == "boolean" and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    return value


def list_tools() -> None:
    from kubelens.authz.policy import ToolPolicy
    from kubelens.config import load_server_config
    from kubelens.tools.catalog import enabled_tools

    cfg = load_server_config()
    for spec in enabled_tools(ToolPolicy.from_list(cfg.disabled_tools)):
        print(f"{spec.name:<20} {spec.description}")


def call_tool(name: str, args: Dict[str, Any]) -> int:
    from kubelens.config import load_server_config
    from kubelens.tools.tools import run_tool

    res = run_tool(name, args, config=load_server_config())
    print(json.dumps(res.to_dict(), indent=2, sort_keys=False, default=str))
    return 0 if res.ok else 1


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Read-only Kubernetes query tools",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run the HTTP API
  python main.py serve --port 8080

  # List enabled tools
  python main.py tools

  # Call a tool
  python main.py call list_resources --arg resource_type=deploy --arg namespace=web
  python main.py call get_logs --arg name=web-0 --arg since=15m --arg grep_include=ERROR
        """,
    )
    sub = parser.add_subparsers(dest="command")

    serve = sub.add_parser("serve", help="Run the HTTP tool API")
    serve.add_argument("--host", help="Bind host (default: KUBELENS_HOST or 0.0.0.0)")
    serve.add_argument("--port", type=int, help="Listen port (default: KUBELENS_PORT or 8080)")

    sub.add_parser("tools", help="List enabled tools")

    call = sub.add_parser("call", help="Call one tool and print the JSON result")
    call.add_argument("tool", help="Tool name (see `tools`)")
    call.add_argument(
        "--arg", "-a", action="append", metavar="KEY=VALUE", help="Tool argument (repeatable)", default=[]
    )

    args = parser.parse_args(argv)

    if args.command == "serve":
        from kubelens.api.server import run

        run(host=args.host, port=args.port)
        return 0

    if args.command == "tools":
        list_tools()
        return 0

    if args.command == "call":
        try:
            tool_args = parse_tool_args(args.arg, args.tool)
        except ValueError as e:
            parser.error(str(e))
        return call_tool(args.tool, tool_args)

    parser.print_help()
    return 2


if __name__ == "__main__":
    sys.exit(main())
