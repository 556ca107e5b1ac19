"""kubelens: read-only query front-end for Kubernetes clusters.

Resolves loosely-specified resource types, pages through collections that have no
server-side cursor, and filters pod logs with grep-like semantics.
"""

__version__ = "0.1.0"
