"""
Helpers for stored paste and comment records.

Records are plain dicts shaped like the v2 envelope the client submitted,
plus server-side ``meta`` fields (``created``, ``salt``, ``expire_date``).
"""

import hashlib
import hmac
import re
import secrets
from typing import Any, Dict, List, Optional

IDENTIFIER_PATTERN = re.compile(r"\A[a-f0-9]{16}\Z")

# adata layout of a paste: [cipher_params, formatter, open_discussion, burn_after_reading]
ADATA_FORMATTER = 1
ADATA_OPEN_DISCUSSION = 2
ADATA_BURN_AFTER_READING = 3


def new_identifier() -> str:
    """Random 64 bit identifier, hex encoded."""
    return secrets.token_hex(8)


def is_valid_identifier(value: Any) -> bool:
    return isinstance(value, str) and IDENTIFIER_PATTERN.match(value) is not None


def new_salt() -> str:
    """Per-paste secret the delete token is derived from."""
    return secrets.token_hex(32)


def derive_delete_token(paste_id: str, salt: str) -> str:
    """HMAC-SHA256 of the paste id keyed with the paste's own salt."""
    return hmac.new(salt.encode(), paste_id.encode(), hashlib.sha256).hexdigest()


def tokens_match(expected: str, presented: Any) -> bool:
    """
    Compare two tokens in fixed time.

    Both sides are hashed first so the compared values always have the same
    length, whatever the caller sent.
    """
    if not isinstance(presented, str):
        presented = ""
    return hmac.compare_digest(
        hashlib.sha256(expected.encode()).digest(),
        hashlib.sha256(presented.encode()).digest(),
    )


def expire_date(record: Dict[str, Any]) -> Optional[float]:
    return record.get("meta", {}).get("expire_date")


def is_expired(record: Dict[str, Any], now: float) -> bool:
    expires = expire_date(record)
    return expires is not None and expires < now


def is_burn_after_reading(record: Dict[str, Any]) -> bool:
    adata = record.get("adata")
    return isinstance(adata, list) and len(adata) > ADATA_BURN_AFTER_READING and adata[ADATA_BURN_AFTER_READING] == 1


def is_open_discussion(record: Dict[str, Any]) -> bool:
    adata = record.get("adata")
    return isinstance(adata, list) and len(adata) > ADATA_OPEN_DISCUSSION and adata[ADATA_OPEN_DISCUSSION] == 1


def public_comment(comment_id: str, record: Dict[str, Any], show_date: bool = True) -> Dict[str, Any]:
    """Comment as returned to clients."""
    meta = dict(record.get("meta", {}))
    if not show_date:
        meta.pop("created", None)
    return {
        "id": comment_id,
        "parentid": record["parentid"],
        "v": record["v"],
        "ct": record["ct"],
        "adata": record["adata"],
        "meta": meta,
        "@context": "?jsonld=comment",
    }


def public_paste(
    record: Dict[str, Any],
    comments: List[Dict[str, Any]],
    now: float,
) -> Dict[str, Any]:
    """
    Paste as returned to clients.

    Drops the salt and creation time and replaces the absolute expiry with
    the remaining time to live.
    """
    meta = dict(record.get("meta", {}))
    meta.pop("salt", None)
    meta.pop("created", None)
    expires = meta.pop("expire_date", None)
    if expires is not None:
        meta["time_to_live"] = max(0, int(expires - now))

    data = {key: value for key, value in record.items() if key != "meta"}
    data["meta"] = meta
    data["comments"] = comments
    data["comment_count"] = len(comments)
    data["comment_offset"] = 0
    data["@context"] = "?jsonld=paste"
    return data
