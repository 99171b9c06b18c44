"""
Typed Exception Hierarchy for the Bakery Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Stock and production errors are surfaced to the people running the bakery,
so callers must be able to react to the *kind* of failure without parsing
messages:

    try:
        production.produce(product_id, quantity=7, actor_id=actor)
    except BatchSizeError as e:
        warn_user(f"Quantity must be a multiple of {e.batch_size}")
    except InsufficientStockError as e:
        show_shortages(e.item_name, e.available, e.requested)

Every exception:
  1. Has a TYPED class (catch by type, not message)
  2. Has a CODE class attribute (machine-readable, stable across releases)
  3. Carries structured DATA as attributes

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    BakeryKernelError (base)
    |
    +-- ValidationError                 caller-correctable input problems
    |   +-- InvalidQuantityError
    |   +-- InvalidCostError
    |   +-- InvalidLevelsError
    |   +-- DuplicateItemNameError
    |   +-- UnitMismatchError
    |   +-- BatchSizeError              severity = "warning"
    |   +-- NegativeStockError
    |   |   +-- InsufficientStockError
    |   +-- ProductionRunAlreadyReversedError
    |
    +-- NotFoundError
    |   +-- ItemNotFoundError
    |   +-- ProductNotFoundError
    |   +-- ProductionRunNotFoundError
    |
    +-- ConflictError                   re-plan or retry, never merge
    |   +-- StockConflictError
    |   +-- PlanConflictError
    |
    +-- CollaboratorUnavailableError    retryable persistence failure
    |
    +-- ImmutabilityViolationError      append-only records touched

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category      | Code                          | When Raised
--------------|-------------------------------|-------------------------------------
Validation    | VALIDATION_ERROR              | Generic input problem
              | INVALID_QUANTITY              | Negative/zero/non-numeric quantity
              | INVALID_COST                  | Non-positive or negative cost
              | INVALID_LEVELS                | min_level >= max_level, negatives
              | DUPLICATE_ITEM_NAME           | Name already used within the type
              | UNIT_MISMATCH                 | Mass vs volume vs count mix-up
              | BATCH_SIZE_MISMATCH           | Quantity not a multiple of batch
              | NEGATIVE_STOCK                | Adjustment would go below zero
              | INSUFFICIENT_STOCK            | Production would go below zero
              | PRODUCTION_RUN_ALREADY_REVERSED | Reversing a reversed run
--------------|-------------------------------|-------------------------------------
Not found     | ITEM_NOT_FOUND                | Inventory item id unknown
              | PRODUCT_NOT_FOUND             | Product id unknown
              | PRODUCTION_RUN_NOT_FOUND      | Production run id unknown
--------------|-------------------------------|-------------------------------------
Conflict      | STOCK_CONFLICT                | Stock changed since planning/read
              | PLAN_CONFLICT                 | Product batch size or recipe changed since planning
--------------|-------------------------------|-------------------------------------
Collaborator  | COLLABORATOR_UNAVAILABLE      | Database failed or timed out
--------------|-------------------------------|-------------------------------------
Immutability  | IMMUTABILITY_VIOLATION        | Update/delete of an Adjustment

===============================================================================
"""

from decimal import Decimal


class BakeryKernelError(Exception):
    """
    Base exception for all bakery kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "BAKERY_KERNEL_ERROR"


# Validation


class ValidationError(BakeryKernelError):
    """
    Caller-correctable input problem.

    ``severity`` is "error" for hard rejections and "warning" for rejections
    the UI surfaces as a warning (the caller may simply block submission).
    """

    code: str = "VALIDATION_ERROR"
    severity: str = "error"

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class InvalidQuantityError(ValidationError):
    """Quantity is negative, zero where positive is required, or not numeric."""

    code: str = "INVALID_QUANTITY"

    def __init__(self, field: str, value, reason: str):
        self.value = str(value)
        self.reason = reason
        super().__init__(f"Invalid {field} ({value}): {reason}", field=field)


class InvalidCostError(ValidationError):
    """Cost is not strictly positive."""

    code: str = "INVALID_COST"

    def __init__(self, value, reason: str = "cost must be greater than zero"):
        self.value = str(value)
        super().__init__(f"Invalid cost ({value}): {reason}", field="cost")


class InvalidLevelsError(ValidationError):
    """Minimum level must be strictly below the maximum level."""

    code: str = "INVALID_LEVELS"

    def __init__(self, min_level: Decimal, max_level: Decimal):
        self.min_level = str(min_level)
        self.max_level = str(max_level)
        super().__init__(
            f"min_level ({min_level}) must be less than max_level ({max_level})",
            field="min_level",
        )


class DuplicateItemNameError(ValidationError):
    """An item with the same name already exists within the item type."""

    code: str = "DUPLICATE_ITEM_NAME"

    def __init__(self, name: str, item_type: str):
        self.name = name
        self.item_type = item_type
        super().__init__(
            f"An item named '{name}' already exists in {item_type}",
            field="name",
        )


class UnitMismatchError(ValidationError):
    """Two units belong to different dimensions (mass, volume, count)."""

    code: str = "UNIT_MISMATCH"

    def __init__(self, from_unit: str, to_unit: str):
        self.from_unit = from_unit
        self.to_unit = to_unit
        super().__init__(
            f"Cannot convert between '{from_unit}' and '{to_unit}'",
            field="unit",
        )


class BatchSizeError(ValidationError):
    """Requested production quantity is not a positive multiple of the batch size."""

    code: str = "BATCH_SIZE_MISMATCH"
    severity: str = "warning"

    def __init__(self, requested_quantity, batch_size: int):
        self.requested_quantity = str(requested_quantity)
        self.batch_size = batch_size
        super().__init__(
            f"quantity must be a multiple of batch size ({batch_size}), "
            f"got {requested_quantity}",
            field="quantity",
        )


class NegativeStockError(ValidationError):
    """Applying the change would leave the item with negative stock."""

    code: str = "NEGATIVE_STOCK"

    def __init__(self, item_id, item_name: str, available: Decimal, requested: Decimal):
        self.item_id = str(item_id)
        self.item_name = item_name
        self.available = str(available)
        self.requested = str(requested)
        super().__init__(
            f"Adjustment of {requested} would drive '{item_name}' below zero "
            f"(available {available})",
            field="amount",
        )


class InsufficientStockError(NegativeStockError):
    """A production run needs more of an ingredient than is in stock."""

    code: str = "INSUFFICIENT_STOCK"


class ProductionRunAlreadyReversedError(ValidationError):
    """The production run has already been reversed."""

    code: str = "PRODUCTION_RUN_ALREADY_REVERSED"

    def __init__(self, run_id):
        self.run_id = str(run_id)
        super().__init__(f"Production run {run_id} is already reversed")


# Not found


class NotFoundError(BakeryKernelError):
    """Referenced entity does not exist."""

    code: str = "NOT_FOUND"


class ItemNotFoundError(NotFoundError):
    code: str = "ITEM_NOT_FOUND"

    def __init__(self, item_id):
        self.item_id = str(item_id)
        super().__init__(f"Inventory item not found: {item_id}")


class ProductNotFoundError(NotFoundError):
    code: str = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id):
        self.product_id = str(product_id)
        super().__init__(f"Product not found: {product_id}")


class ProductionRunNotFoundError(NotFoundError):
    code: str = "PRODUCTION_RUN_NOT_FOUND"

    def __init__(self, run_id):
        self.run_id = str(run_id)
        super().__init__(f"Production run not found: {run_id}")


# Conflict


class ConflictError(BakeryKernelError):
    """Concurrent mutation detected; the operation must be retried or re-planned."""

    code: str = "CONFLICT"


class StockConflictError(ConflictError):
    """
    Item stock changed between read/plan and commit.

    ``expected_version`` is None when the conflict was detected by the
    database (stale row on flush) rather than by an explicit version check.
    """

    code: str = "STOCK_CONFLICT"

    def __init__(self, item_id, expected_version: int | None, actual_version: int | None):
        self.item_id = str(item_id)
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Stock for item {item_id} changed concurrently "
            f"(expected version {expected_version}, found {actual_version})"
        )


class PlanConflictError(ConflictError):
    """The product's batch size or recipe changed after the plan was made."""

    code: str = "PLAN_CONFLICT"

    def __init__(self, product_id, reason: str):
        self.product_id = str(product_id)
        self.reason = reason
        super().__init__(f"Production plan for product {product_id} is out of date: {reason}")


# Collaborator


class CollaboratorUnavailableError(BakeryKernelError):
    """
    The persistence collaborator failed or timed out.

    Retryable. The kernel never retries on its own.
    """

    code: str = "COLLABORATOR_UNAVAILABLE"
    retryable: bool = True

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"Storage unavailable during {operation}: {reason}")


# Immutability


class ImmutabilityViolationError(BakeryKernelError):
    """Attempt to modify or delete an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Cannot modify {entity_type} {entity_id}: {reason}"
        )
