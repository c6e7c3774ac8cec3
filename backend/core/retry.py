import functools
import logging
import time

from django.conf import settings
from django.db import InterfaceError, OperationalError, transaction

from .exceptions import StorageUnavailable

logger = logging.getLogger(__name__)


def retry_on_transient(func):
    """
    Retry a store operation on transient database failures.

    Only the outermost call retries: inside an open transaction the
    connection state is already broken, so the failure surfaces at once.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        attempts = max(1, getattr(settings, 'STORE_RETRY_ATTEMPTS', 3))
        delay = getattr(settings, 'STORE_RETRY_BACKOFF', 0.05)

        for attempt in range(1, attempts + 1):
            try:
                return func(*args, **kwargs)
            except (OperationalError, InterfaceError) as exc:
                if transaction.get_connection().in_atomic_block or attempt == attempts:
                    logger.error(f"{func.__qualname__} failed after {attempt} attempt(s): {exc}")
                    raise StorageUnavailable() from exc
                logger.warning(f"Transient storage error in {func.__qualname__} (attempt {attempt}/{attempts}): {exc}")
                time.sleep(delay)
                delay *= 2
    return wrapper
