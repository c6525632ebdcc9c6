# assembly_core/services/db.py
from __future__ import annotations

import functools
import logging

from django.db import InterfaceError, OperationalError

from assembly_core.workflows.errors import TransientError

logger = logging.getLogger(__name__)


def translate_db_errors(func):
    """
    Surface connectivity failures as a retryable TransientError.
    Integrity and programming errors are not retryable and pass through.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (OperationalError, InterfaceError) as exc:
            logger.warning("Transient storage failure in %s: %s", func.__name__, exc)
            raise TransientError(
                "The data store is temporarily unavailable. Please retry.",
                rule="storage:unavailable",
            ) from exc

    return wrapper
