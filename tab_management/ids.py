"""
Opaque identifiers for shelved groups and tabs.
"""
import uuid


def create_id(prefix: str) -> str:
    """Return a new unique id such as ``group_3f2a...``.

    Uniqueness rests on uuid4; ids are never re-checked against stored data.
    """
    return f"{prefix}_{uuid.uuid4().hex}"
