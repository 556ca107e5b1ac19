from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional, Tuple

from kubelens.authz.policy import parse_disabled_tools


def first_env(default: str, *keys: str) -> str:
    """Value of the first env var in `keys` that is set to something non-blank, else `default`."""
    for key in keys:
        value = (os.getenv(key) or "").strip()
        if value:
            return value
    return default


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except Exception:
        return default


@dataclass(frozen=True)
class ServerConfig:
    # Cluster access
    kubeconfig: Optional[str] = None
    context: Optional[str] = None
    namespace: Optional[str] = None

    # Tool surface
    disabled_tools: Tuple[str, ...] = field(default_factory=tuple)

    # HTTP server
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"

    # Caps (0 = unlimited)
    max_log_chars: int = 0


def load_server_config() -> ServerConfig:
    """
    Load server configuration from env (ConfigMap/Secret friendly).

    Recognised vars:
    - KUBECONFIG=/path/to/kubeconfig
    - KUBELENS_CONTEXT=prod-cluster
    - KUBELENS_NAMESPACE=payments (or NAMESPACE)
    - DISABLED_TOOLS=get_logs,decode_base64
    - KUBELENS_HOST / KUBELENS_PORT
    - LOG_LEVEL=debug
    - KUBELENS_MAX_LOG_BYTES=200000
    """
    port = _env_int("KUBELENS_PORT", 8080)
    if port <= 0 or port > 65535:
        port = 8080

    return ServerConfig(
        kubeconfig=first_env("", "KUBECONFIG") or None,
        context=first_env("", "KUBELENS_CONTEXT") or None,
        namespace=first_env("", "KUBELENS_NAMESPACE", "NAMESPACE") or None,
        disabled_tools=tuple(parse_disabled_tools(os.getenv("DISABLED_TOOLS", ""))),
        host=first_env("0.0.0.0", "KUBELENS_HOST"),
        port=port,
        log_level=first_env("INFO", "LOG_LEVEL").upper(),
        max_log_chars=max(0, _env_int("KUBELENS_MAX_LOG_BYTES", 0)),
    )
