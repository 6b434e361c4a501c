import logging
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterator, Tuple

from bson import ObjectId
from bson.errors import InvalidId
from pymongo.errors import PyMongoError

from exchange_chat.utils.errors import StorageError, ValidationError


logger = logging.getLogger(__name__)

# Stored datetimes are naive UTC, which is how the driver hands them back.
_EPOCH = datetime(1970, 1, 1)
_ONE_MS = timedelta(milliseconds=1)


@contextmanager
def storage_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except PyMongoError as exc:
        logger.error("Message store failure during %s: %s", operation, exc)
        raise StorageError(operation) from exc


def utc_now_ms() -> datetime:
    # the store keeps millisecond precision; truncate up front so cursors compare exactly
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    return now.replace(microsecond=now.microsecond - now.microsecond % 1000)


def to_storage_time(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def normalize(doc: Dict[str, Any]) -> Dict[str, Any]:
    """Turn a raw document into the shape handed to services: str ids, aware UTC times."""
    doc["_id"] = str(doc.get("_id"))
    created_at = doc.get("created_at")
    if isinstance(created_at, datetime):
        doc["created_at"] = as_utc(created_at)
    return doc


def encode_cursor(created_at: datetime, object_id) -> str:
    ms = (to_storage_time(created_at) - _EPOCH) // _ONE_MS
    return f"{ms}:{object_id}"


def decode_cursor(cursor: str) -> Tuple[datetime, ObjectId]:
    # cursor format: ts_ms:oid
    try:
        ts_str, oid_hex = cursor.split(":", 1)
        return _EPOCH + int(ts_str) * _ONE_MS, ObjectId(oid_hex)
    except (ValueError, InvalidId, OverflowError) as exc:
        raise ValidationError(f"Malformed cursor: {cursor!r}") from exc
