from typing import Optional, Tuple

from exchange_chat.utils.errors import InvalidParticipant


SEPARATOR = "|"
ESCAPE = "\\"
GENERAL_SCOPE = "general"
ITEM_SCOPE_PREFIX = "item:"


def _check_participant(user_id) -> str:
    if not isinstance(user_id, str) or not user_id.strip():
        raise InvalidParticipant("Participant id must be a non-empty string")
    return user_id


def _escape(user_id: str) -> str:
    # ids are opaque; escaping keeps "a|b" + "c" apart from "a" + "b|c"
    return user_id.replace(ESCAPE, ESCAPE * 2).replace(SEPARATOR, ESCAPE + SEPARATOR)


def participants_of(user_a: str, user_b: str) -> Tuple[str, str]:
    a = _check_participant(user_a)
    b = _check_participant(user_b)
    if a == b:
        raise InvalidParticipant("Cannot message yourself")
    return (a, b) if a < b else (b, a)


def scope_of(item_id: Optional[str]) -> str:
    # "item:" keeps an item literally named "general" out of the general bucket
    if not item_id:
        return GENERAL_SCOPE
    return f"{ITEM_SCOPE_PREFIX}{item_id}"


def derive_key(user_a: str, user_b: str, item_id: Optional[str] = None) -> str:
    """
    Canonical conversation key for an unordered pair of users and an optional item.

    derive_key(a, b, i) == derive_key(b, a, i) for every valid input, and a
    different item scope always yields a different key.
    """
    low, high = participants_of(user_a, user_b)
    return SEPARATOR.join((_escape(low), _escape(high), scope_of(item_id)))
