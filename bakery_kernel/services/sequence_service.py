"""
SequenceService -- monotonic sequence allocation via locked counter rows.

Responsibility:
    Hands out strictly increasing numbers for ledger adjustments (the
    ``seq`` tie-breaker between entries sharing a timestamp) and for
    production run numbers.  A dedicated counter table is read with
    ``SELECT ... FOR UPDATE`` so concurrent allocations serialize on the
    counter row.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
    Called by InventoryLedger and ProductionService.

Invariants enforced:
    - Monotonicity: the locked counter row is the sole source of the next
      value.  MAX(seq) + 1 is never used.
    - Transactional: an allocation is only visible once the caller's
      transaction commits; a rollback returns the value.

Failure modes:
    - IntegrityError if two transactions create the same missing counter
      at once.  ``create_tables`` initializes the well-known counters so
      this only affects ad-hoc sequence names.
"""

from sqlalchemy import BigInteger, String, select
from sqlalchemy.orm import Mapped, Session, mapped_column

from bakery_kernel.db.base import Base
from bakery_kernel.logging_config import get_logger

logger = get_logger("services.sequence")


class SequenceCounter(Base):
    """Named counter row; locked for every allocation."""

    __tablename__ = "sequence_counters"

    # Sequence name (e.g., "adjustment", "production_run")
    name: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
    )

    current_value: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )


class SequenceService:
    """
    Service for generating transactional sequence numbers.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
    """

    # Well-known sequence names
    ADJUSTMENT = "adjustment"
    PRODUCTION_RUN = "production_run"

    def __init__(self, session: Session):
        self._session = session

    def _locked_counter(self, sequence_name: str) -> SequenceCounter | None:
        return self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def next_value(self, sequence_name: str) -> int:
        """
        Lock the counter row, increment it and return the new value.

        Postconditions:
            - Returns an integer > 0, strictly greater than any value
              previously returned for ``sequence_name``.
            - The counter row stays locked until the transaction completes.
        """
        counter = self._locked_counter(sequence_name)

        if counter is None:
            counter = SequenceCounter(name=sequence_name, current_value=0)
            self._session.add(counter)
            logger.debug(
                "sequence_counter_created",
                extra={"sequence_name": sequence_name},
            )

        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def current_value(self, sequence_name: str) -> int | None:
        """Current value of a sequence without incrementing, or None."""
        counter = self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
        ).scalar_one_or_none()

        return counter.current_value if counter else None

    def initialize_sequences(self) -> None:
        """Create the well-known counters if missing.  Called by create_tables."""
        for name in (self.ADJUSTMENT, self.PRODUCTION_RUN):
            existing = self._session.execute(
                select(SequenceCounter)
                .where(SequenceCounter.name == name)
            ).scalar_one_or_none()

            if existing is None:
                self._session.add(SequenceCounter(name=name, current_value=0))

        self._session.flush()
