import logging
from contextlib import contextmanager
from typing import Iterator

from fastapi import HTTPException, status

from exchange_chat.utils.errors import StorageError, ValidationError


logger = logging.getLogger(__name__)


@contextmanager
def translate_errors() -> Iterator[None]:
    """Map core errors onto HTTP responses: caller mistakes are 400, store failures 503."""
    try:
        yield
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except StorageError as exc:
        logger.warning("Returning 503 after storage failure in %s", exc.operation)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Message store unavailable, please retry",
            headers={"Retry-After": "1"},
        ) from exc
