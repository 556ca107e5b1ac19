"""
HTTP front-end for the read-only tools.

Exposes the tool catalog and a single call endpoint; every call goes through
run_tool, so policy and error mapping are identical to the CLI.
"""

from __future__ import annotations

import logging
import os
import time
from typing import Any, Dict, Optional

from fastapi import Body, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from kubelens import __version__
from kubelens.authz.policy import ToolPolicy
from kubelens.config import load_server_config
from kubelens.tools.catalog import enabled_tools, get_tool_spec
from kubelens.tools.tools import run_tool

logger = logging.getLogger(__name__)

app = FastAPI(title="kubelens", version=__version__)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    logger.debug(
        "%s %s - %d (%.3fs)", request.method, request.url.path, response.status_code, time.time() - start_time
    )
    return response


@app.get("/healthz")
def healthz() -> Dict[str, Any]:
    return {"ok": True}


@app.get("/tools")
def list_tools() -> Dict[str, Any]:
    cfg = load_server_config()
    tools = [s.to_dict() for s in enabled_tools(ToolPolicy.from_list(cfg.disabled_tools))]
    return {"tools": tools, "count": len(tools)}


@app.post("/tools/{name}")
def call_tool(name: str, args: Optional[Dict[str, Any]] = Body(default=None)) -> JSONResponse:
    if get_tool_spec(name) is None:
        raise HTTPException(status_code=404, detail=f"Unknown tool: {name}")

    cfg = load_server_config()
    policy = ToolPolicy.from_list(cfg.disabled_tools)
    if policy.is_disabled(name):
        raise HTTPException(status_code=403, detail=f"Tool {name} is disabled")

    res = run_tool(name, args or {}, config=cfg, policy=policy)
    return JSONResponse(status_code=200 if res.ok else 400, content=res.to_dict())


def run(host: Optional[str] = None, port: Optional[int] = None) -> None:
    import uvicorn

    cfg = load_server_config()
    host = host or cfg.host
    port = port or cfg.port

    log_level = os.getenv("LOG_LEVEL", "info").upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    # Map Python logging levels to uvicorn log levels
    uvicorn_log_level = (
        log_level.lower() if log_level.lower() in ["critical", "error", "warning", "info", "debug", "trace"] else "info"
    )

    disabled = ", ".join(cfg.disabled_tools) or "none"
    logger.info("Starting kubelens on %s:%d (log_level=%s, disabled_tools=%s)", host, port, log_level, disabled)
    uvicorn.run(app, host=host, port=port, log_level=uvicorn_log_level)
