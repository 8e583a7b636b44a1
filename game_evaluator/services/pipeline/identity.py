"""Identity keys used to merge observations of the same real-world game.

Two branches:
- Provider-native id present: ("rawg", "3498"), ("steam", "730"),
  ("google_play", "com.example.game")
- Otherwise: ("title", "<normalized title>_<YYYY-MM-DD or unknown>")

The same key is used by the in-run deduplicator and by the persistence
upsert, so a record merged away during a run and a row written by a previous
run reconcile identically.
"""
from datetime import date
from typing import Any, NamedTuple

TITLE_NAMESPACE = "title"
UNKNOWN_DATE = "unknown"


class IdentityKey(NamedTuple):
    namespace: str
    value: str

    def __str__(self) -> str:
        return f"{self.namespace}:{self.value}"


def normalize_title(title: Any) -> str:
    """
    Normalize a title for identity comparison.

    Examples:
        >>> normalize_title("  Elden Ring ")
        'elden ring'
        >>> normalize_title("FINAL  FANTASY VII")
        'final fantasy vii'
    """
    if title is None:
        return ""
    return " ".join(str(title).lower().split())


def _native_id(record: Any) -> str:
    value = getattr(record, "provider_native_id", None)
    if value is None or isinstance(value, bool):
        return ""
    return str(value).strip()


def _date_part(record: Any) -> str:
    value = getattr(record, "release_date", None)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str) and value.strip():
        return value.strip()
    return UNKNOWN_DATE


def identify(record: Any) -> IdentityKey:
    """
    Derive the identity key for a candidate record.

    Never raises: records with missing or malformed fields fall back to the
    title-based branch.
    """
    native_id = _native_id(record)
    provider = getattr(record, "provider", None)
    if native_id and isinstance(provider, str) and provider:
        return IdentityKey(provider, native_id)

    title = normalize_title(getattr(record, "title", None))
    return IdentityKey(TITLE_NAMESPACE, f"{title}_{_date_part(record)}")
