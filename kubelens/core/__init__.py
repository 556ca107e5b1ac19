"""Pure query primitives (no I/O).

- resolver: alias -> ResourceIdentifier
- pagination: opaque continue tokens over in-memory collections
- log_filter / time_window: grep-like line filtering and "since" parsing
"""
