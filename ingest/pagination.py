"""
Offset/limit pagination over Redmine collection endpoints.
"""

import logging
from typing import Any, Dict, List, Optional

from ingest.transport import DecodeError
from normalize.util import decode_envelope, unwrap_list

logger = logging.getLogger(__name__)

PAGE_SIZE = 100


def _total_count(envelope: Dict[str, Any], path: str) -> int:
    total = envelope.get("total_count")
    if isinstance(total, bool) or not isinstance(total, int) or total < 0:
        raise DecodeError(f"{path}: total_count should be a non-negative integer, got {total!r}")
    return total


def fetch_all(session, path: str, key: str, params: Optional[Dict[str, str]] = None) -> List[Dict[str, Any]]:
    """Fetch every page of a collection and return the raw items in page order.

    The caller's params are copied, never mutated. The next offset is always the number of items
    accumulated so far. Stops once that number reaches the server's total_count.
    """
    query = {k: str(v) for k, v in (params or {}).items()}
    query.setdefault("limit", str(PAGE_SIZE))
    query.pop("offset", None)

    items: List[Dict[str, Any]] = []
    while True:
        envelope = decode_envelope(session.get(path, query), key)
        page = unwrap_list(envelope, key)
        total = _total_count(envelope, path)
        items.extend(page)
        logger.debug("%s: %d/%d %s fetched", path, len(items), total, key)
        if len(items) >= total:
            break
        if not page:
            raise DecodeError(f"{path}: empty page at offset {len(items)} but total_count is {total}")
        query["offset"] = str(len(items))
    return items


__all__ = ["PAGE_SIZE", "fetch_all"]
