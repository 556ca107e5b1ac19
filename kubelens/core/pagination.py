"""Client-side pagination with opaque continue tokens.

metrics.k8s.io has no server-side continue support, so every call fetches the full
collection, sorts it, and slices a window out of it. The continue token is a plain
value (offset + collection kind + namespace scope) rendered as unpadded URL-safe
base64 JSON; nothing is stored between calls.

Consistency is best-effort: items created or deleted between calls shift offsets,
which can skip or repeat entries across pages.
"""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from typing import Generic, List, Optional, Sequence, TypeVar

from pydantic import ValidationError

from kubelens.core.errors import ContinueTokenKindMismatchError, InvalidContinueTokenError
from kubelens.core.models import CursorKind, PaginationCursor

T = TypeVar("T")


def encode_continue_token(cursor: PaginationCursor) -> str:
    payload = {"offset": cursor.offset, "type": cursor.kind, "namespace": cursor.namespace}
    raw = json.dumps(payload, separators=(",", ":")).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def decode_continue_token(token: str) -> PaginationCursor:
    """
    Decode a token produced by encode_continue_token.

    Padded and unpadded forms are both accepted; characters outside the URL-safe
    alphabet are rejected rather than skipped.

    Raises:
        InvalidContinueTokenError: on bad base64, bad JSON, or an out-of-range payload.
    """
    s = (token or "").strip()
    try:
        data = base64.b64decode(s + "=" * (-len(s) % 4), altchars=b"-_", validate=True)
        obj = json.loads(data.decode("utf-8"))
    except (binascii.Error, ValueError) as e:
        raise InvalidContinueTokenError(f"invalid continue token: {e}") from e

    if not isinstance(obj, dict):
        raise InvalidContinueTokenError("invalid continue token format: expected an object")
    offset = obj.get("offset", 0)
    if isinstance(offset, bool) or not isinstance(offset, int):
        raise InvalidContinueTokenError("invalid continue token format: offset must be an integer")
    try:
        return PaginationCursor(
            offset=offset,
            kind=obj.get("type"),
            namespace=str(obj.get("namespace") or ""),
        )
    except ValidationError as e:
        raise InvalidContinueTokenError(f"invalid continue token format: {e.errors()[0].get('msg')}") from e


@dataclass(frozen=True)
class Page(Generic[T]):
    items: List[T]
    continue_token: Optional[str] = None

    @property
    def has_more(self) -> bool:
        return self.continue_token is not None


def _start_offset(token: str, *, kind: CursorKind, namespace: str) -> int:
    if not token:
        return 0
    cursor = decode_continue_token(token)
    if cursor.kind != kind:
        raise ContinueTokenKindMismatchError(kind, cursor.kind)
    # A cursor only means something inside the namespace it was issued for;
    # restart instead of failing the query.
    if cursor.namespace != namespace:
        return 0
    return cursor.offset


def paginate(
    items: Sequence[T],
    limit: int,
    token: str = "",
    *,
    kind: CursorKind,
    namespace: str = "",
) -> Page[T]:
    """
    Return one window of `items` and the token for the next one.

    `items` must already be sorted by a stable key (newest first); this function
    never reorders. Following the returned tokens until `continue_token` is None
    yields every item exactly once when the collection does not change.

    Raises:
        ValueError: limit is not positive.
        InvalidContinueTokenError: token cannot be decoded.
        ContinueTokenKindMismatchError: token was issued for another collection kind.
    """
    if limit <= 0:
        raise ValueError(f"limit must be positive, got {limit}")

    offset = _start_offset(token, kind=kind, namespace=namespace)
    total = len(items)
    end = min(offset + limit, total)
    window = list(items[offset:end])

    if end < total:
        nxt = PaginationCursor(offset=offset + limit, kind=kind, namespace=namespace)
        return Page(items=window, continue_token=encode_continue_token(nxt))
    return Page(items=window)
