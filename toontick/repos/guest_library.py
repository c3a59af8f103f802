"""Guest library slot kept in the client-side session.

The slot rides in the signed session cookie, so entries are stored with a
fixed set of fields and the whole slot is held under ``MAX_SLOT_BYTES`` of
compact JSON. Browsers drop cookies over 4KB without telling the server.
"""

import json

from flask import session


SLOT_KEY = "manhwaLibrary"

ENTRY_FIELDS = (
    "id",
    "title",
    "image",
    "status",
    "chapters",
    "progress",
    "averageScore",
    "popularity",
    "year",
    "createdAt",
)

# Leaves room for signing, base64 and the other session keys.
MAX_SLOT_BYTES = 2700


def _resolve(slot):
    return session if slot is None else slot


def load(slot=None):
    """Return a copy of the guest entries."""
    items = _resolve(slot).get(SLOT_KEY) or []
    # Copy so callers never mutate the stored list in place.
    return [dict(item) for item in items if isinstance(item, dict)]


def to_entry(item):
    """Keep only the fields a guest entry stores, dropping empty ones."""
    return {field: item[field] for field in ENTRY_FIELDS if item.get(field) is not None}


def encoded_size(items):
    """Size in bytes of the slot as the session serializer writes it."""
    return len(json.dumps(items, separators=(",", ":")).encode("utf-8"))


def save(items, slot=None):
    """Replace the stored guest entries."""
    _resolve(slot)[SLOT_KEY] = list(items)


def clear(slot=None):
    """Drop the guest slot entirely."""
    _resolve(slot).pop(SLOT_KEY, None)
