"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Common constructor and session-handling contract for every write-side
    service in the kernel.  Services persist with ``session.flush()`` and
    never ``session.commit()``; the module services in ``bakery_modules``
    own commit and rollback.

Failure modes:
    - Driver and connection failures are translated to
      CollaboratorUnavailableError by ``translate_db_errors``.  Integrity
      errors are left to the caller, which knows which constraint it hit.
"""

from abc import ABC
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Generic, TypeVar

from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.orm import Session

from bakery_kernel.db.base import Base
from bakery_kernel.exceptions import CollaboratorUnavailableError
from bakery_kernel.logging_config import get_logger

ModelType = TypeVar("ModelType", bound=Base)

logger = get_logger("services.base")


@contextmanager
def translate_db_errors(operation: str) -> Iterator[None]:
    """Re-raise persistence outages as CollaboratorUnavailableError."""
    try:
        yield
    except IntegrityError:
        raise
    except (OperationalError, DBAPIError) as e:
        logger.error(
            "persistence_unavailable",
            extra={"operation": operation, "error": str(e.orig) if e.orig else str(e)},
        )
        raise CollaboratorUnavailableError(
            operation=operation,
            reason=str(e.orig) if e.orig else str(e),
        ) from e


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all kernel services.

    Guarantees:
        - The service never calls ``session.commit()`` or
          ``session.rollback()``.
    """

    def __init__(self, session: Session):
        self.session = session
