"""Numeric token ids derived from the store's opaque document ids.

The store never holds these numbers; they are recomputed on every read from
the last 8 hex chars of ``external_id``.  Rows with a missing or malformed
id get a random number instead, so such a token's id changes between reads.
"""

import random
import re

_HEX = re.compile(r"[0-9a-fA-F]+")

FALLBACK_ID_RANGE = 1_000_000


def surrogate_id(external_id: str | None) -> int:
    tail = (external_id or "")[-8:]
    value = int(tail, 16) if _HEX.fullmatch(tail) else 0
    if value:
        return value
    return random.randrange(FALLBACK_ID_RANGE)
