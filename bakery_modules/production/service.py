"""
Production Module Service (``bakery_modules.production.service``).

Responsibility
--------------
Product and recipe maintenance (``ProductService``) and the production run
lifecycle (``ProductionService``): plan with the pure
``ProductionPlanner``, commit through the ``InventoryLedger``, reverse,
and roll up product cost with ``CostRollup``.

Invariants
----------
- A production run and all of its ingredient adjustments commit together
  or not at all.
- Ingredient locks (in-process registry and row locks) are taken in
  sorted id order.
- A plan commits only if no ingredient's version moved since planning
  (else StockConflictError) and the product's batch size and recipe still
  match it (else PlanConflictError).  Either way nothing is written.
- Recipe amounts are stored per batch in the ingredient's base unit.

Usage::

    products = ProductService(session)
    bread = products.create_product(
        "Bread", selling_price=150, batch_size=10, actor_id=actor_id,
        recipe=[RecipeEntry(flour_id, 200, "g")],
    )
    production = ProductionService(session, clock=clock)
    run = production.produce(bread.product_id, 30, actor_id)
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from bakery_engines.costing import CostRollup, ProductCost
from bakery_engines.production import ProductionPlan, ProductionPlanner, batch_count
from bakery_kernel.domain.clock import Clock, SystemClock
from bakery_kernel.domain.dtos import (
    DeductedIngredient,
    IngredientStock,
    ProductionRunRecord,
    ProductSpec,
    RecipeLine,
)
from bakery_kernel.domain.units import base_unit_of, convert, to_decimal
from bakery_kernel.exceptions import (
    InsufficientStockError,
    InvalidQuantityError,
    ItemNotFoundError,
    PlanConflictError,
    ProductionRunAlreadyReversedError,
    ProductionRunNotFoundError,
    ProductNotFoundError,
    StockConflictError,
    ValidationError,
)
from bakery_kernel.logging_config import LogContext, get_logger
from bakery_kernel.models.inventory import InventoryItem
from bakery_kernel.models.production import (
    Product,
    ProductionRun,
    ProductRecipe,
    ProductStatus,
)
from bakery_kernel.selectors.adjustment_selector import AdjustmentSelector
from bakery_kernel.services.base import translate_db_errors
from bakery_kernel.services.ledger_service import InventoryLedger
from bakery_kernel.services.sequence_service import SequenceService
from bakery_kernel.utils.locks import ItemLockRegistry, item_locks

logger = get_logger("modules.production.service")


@dataclass(frozen=True)
class RecipeEntry:
    """A recipe line as entered: amount per batch in ``unit`` (default: the item's unit)."""

    item_id: UUID
    amount: Decimal | int | str
    unit: str | None = None


def _to_spec(product: Product) -> ProductSpec:
    return ProductSpec(
        product_id=product.id,
        name=product.name,
        batch_size=product.batch_size,
        selling_price=product.selling_price,
        recipe=tuple(
            RecipeLine(item_id=line.inventory_item_id, amount_required=line.amount_required)
            for line in product.recipe
        ),
    )


def _to_stock(item: InventoryItem) -> IngredientStock:
    return IngredientStock(
        item_id=item.id,
        name=item.name,
        unit=base_unit_of(item.unit),
        available=item.current_quantity,
        cost_per_base_unit=item.cost,
        version=item.version,
    )


def _validate_batch_size(batch_size) -> int:
    value = to_decimal(batch_size, field="batch_size")
    if value <= 0 or value != value.to_integral_value():
        raise InvalidQuantityError("batch_size", batch_size, "must be a positive whole number")
    return int(value)


def _validate_price(selling_price) -> Decimal:
    value = to_decimal(selling_price, field="selling_price")
    if value < 0:
        raise InvalidQuantityError("selling_price", value, "must not be negative")
    return value


class ProductService:
    """Product and recipe maintenance.  Each public method owns its transaction."""

    def __init__(self, session: Session):
        self._session = session

    def _get(self, product_id: UUID) -> Product:
        product = self._session.get(Product, product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        return product

    def _ensure_unique_name(self, name: str, exclude_id: UUID | None = None) -> None:
        query = select(Product.id).where(Product.name == name)
        if exclude_id is not None:
            query = query.where(Product.id != exclude_id)
        if self._session.execute(query).first() is not None:
            raise ValidationError(f"A product named '{name}' already exists", field="name")

    def _flush_named(self, operation: str, name: str) -> None:
        with translate_db_errors(operation):
            try:
                self._session.flush()
            except IntegrityError as e:
                raise ValidationError(f"A product named '{name}' already exists", field="name") from e

    def _base_amounts(self, entries: Iterable[RecipeEntry]) -> dict[UUID, Decimal]:
        """Resolve entered recipe lines to base-unit amounts per item."""
        amounts: dict[UUID, Decimal] = {}
        for entry in entries:
            item = self._session.get(InventoryItem, entry.item_id)
            if item is None:
                raise ItemNotFoundError(entry.item_id)
            if item.id in amounts:
                raise ValidationError(
                    f"'{item.name}' appears more than once in the recipe", field="recipe"
                )
            entered = to_decimal(entry.amount, field="amount_required")
            if entered <= 0:
                raise InvalidQuantityError("amount_required", entered, "must be greater than zero")
            amounts[item.id] = convert(entered, entry.unit or item.unit, base_unit_of(item.unit))
        return amounts

    def _apply_recipe(self, product: Product, amounts: dict[UUID, Decimal]) -> None:
        # Update in place so the (product, item) unique constraint never sees two rows
        existing = {line.inventory_item_id: line for line in product.recipe}
        for item_id, line in existing.items():
            if item_id not in amounts:
                product.recipe.remove(line)
        for item_id, amount in amounts.items():
            line = existing.get(item_id)
            if line is None:
                product.recipe.append(
                    ProductRecipe(inventory_item_id=item_id, amount_required=amount)
                )
            else:
                line.amount_required = amount

    def create_product(
        self,
        name: str,
        selling_price: Decimal | int | str,
        batch_size: int,
        actor_id: UUID,
        recipe: Iterable[RecipeEntry] = (),
    ) -> ProductSpec:
        clean_name = (name or "").strip()
        if not clean_name:
            raise ValidationError("name is required", field="name")
        price = _validate_price(selling_price)
        size = _validate_batch_size(batch_size)

        try:
            self._ensure_unique_name(clean_name)
            product = Product(
                name=clean_name,
                selling_price=price,
                batch_size=size,
                status=ProductStatus.ACTIVE.value,
                created_by_id=actor_id,
            )
            self._session.add(product)
            self._apply_recipe(product, self._base_amounts(recipe))
            self._flush_named("create_product", clean_name)
            with translate_db_errors("create_product"):
                self._session.commit()
            logger.info(
                "product_created",
                extra={
                    "product_id": str(product.id),
                    "batch_size": size,
                    "recipe_lines": len(product.recipe),
                },
            )
            return _to_spec(product)
        except Exception:
            self._session.rollback()
            raise

    def set_recipe(
        self,
        product_id: UUID,
        recipe: Iterable[RecipeEntry],
        actor_id: UUID,
    ) -> ProductSpec:
        """Replace the product's recipe.  Amounts are per batch, in any unit of the item's dimension."""
        try:
            product = self._get(product_id)
            self._apply_recipe(product, self._base_amounts(recipe))
            product.updated_by_id = actor_id
            with translate_db_errors("set_recipe"):
                self._session.flush()
                self._session.commit()
            logger.info(
                "product_recipe_set",
                extra={"product_id": str(product.id), "recipe_lines": len(product.recipe)},
            )
            return _to_spec(product)
        except Exception:
            self._session.rollback()
            raise

    def update_product(
        self,
        product_id: UUID,
        actor_id: UUID,
        *,
        name: str | None = None,
        selling_price: Decimal | int | str | None = None,
        batch_size: int | None = None,
        status: ProductStatus | str | None = None,
    ) -> ProductSpec:
        try:
            product = self._get(product_id)
            if name is not None:
                clean_name = name.strip()
                if not clean_name:
                    raise ValidationError("name is required", field="name")
                self._ensure_unique_name(clean_name, exclude_id=product.id)
                product.name = clean_name
            if selling_price is not None:
                product.selling_price = _validate_price(selling_price)
            if batch_size is not None:
                product.batch_size = _validate_batch_size(batch_size)
            if status is not None:
                try:
                    product.status = ProductStatus(getattr(status, "value", status)).value
                except ValueError as e:
                    raise ValidationError(f"unknown product status '{status}'", field="status") from e
            product.updated_by_id = actor_id
            self._flush_named("update_product", product.name)
            with translate_db_errors("update_product"):
                self._session.commit()
            return _to_spec(product)
        except Exception:
            self._session.rollback()
            raise

    def get_product(self, product_id: UUID) -> ProductSpec:
        return _to_spec(self._get(product_id))


class ProductionService:
    """
    Production run lifecycle and product costing.

    Transaction boundary: ``commit``, ``produce`` and ``reverse`` commit on
    success and roll back on failure.  ``plan`` and ``product_cost`` only
    read.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        locks: ItemLockRegistry | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._locks = locks or item_locks
        self._ledger = InventoryLedger(session, self._clock)
        self._sequences = SequenceService(session)
        self._adjustments = AdjustmentSelector(session)
        self._planner = ProductionPlanner()
        self._costing = CostRollup()

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    def _product(self, product_id: UUID) -> Product:
        product = self._session.get(Product, product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        return product

    def _stock(self, item_ids: Iterable[UUID]) -> dict[UUID, IngredientStock]:
        ids = list(item_ids)
        if not ids:
            return {}
        items = self._session.execute(
            select(InventoryItem)
            .where(InventoryItem.id.in_(ids))
            .execution_options(populate_existing=True)
        ).scalars().all()
        return {item.id: _to_stock(item) for item in items}

    def _spec_and_stock(self, product_id: UUID) -> tuple[ProductSpec, dict[UUID, IngredientStock]]:
        with translate_db_errors("load_product"):
            spec = _to_spec(self._product(product_id))
            return spec, self._stock(line.item_id for line in spec.recipe)

    def _run_record(self, run: ProductionRun) -> ProductionRunRecord:
        return ProductionRunRecord(
            id=run.id,
            run_number=run.run_number,
            product_id=run.product_id,
            product_name=run.product.name,
            quantity_produced=run.quantity_produced,
            produced_on=run.produced_on,
            cost=run.cost,
            ingredients_deducted=tuple(
                DeductedIngredient.from_json(d) for d in run.ingredients_deducted
            ),
            notes=run.notes,
            is_reversed=run.is_reversed,
            adjustments=tuple(self._adjustments.for_production_run(run.id)),
        )

    # -------------------------------------------------------------------------
    # Planning
    # -------------------------------------------------------------------------

    def plan(self, product_id: UUID, quantity: int | Decimal | str) -> ProductionPlan:
        """Plan a run against current stock.  Reads only; writes nothing."""
        spec, stock = self._spec_and_stock(product_id)
        return self._planner.plan(spec, quantity, stock)

    def max_producible(self, product_id: UUID) -> int | None:
        spec, stock = self._spec_and_stock(product_id)
        return self._planner.max_producible(spec, stock)

    def product_cost(self, product_id: UUID) -> ProductCost:
        """Current batch cost, unit cost and margin of a product."""
        spec, stock = self._spec_and_stock(product_id)
        return self._costing.product_cost(spec, stock)

    # -------------------------------------------------------------------------
    # Commit / produce / reverse
    # -------------------------------------------------------------------------

    def commit(
        self,
        plan: ProductionPlan,
        actor_id: UUID,
        notes: str | None = None,
        produced_on: date | None = None,
    ) -> ProductionRunRecord:
        """
        Commit a previously computed plan.

        Raises:
            StockConflictError: an ingredient changed since ``plan`` was made.
            InsufficientStockError: an ingredient would go negative.
            PlanConflictError: the product's batch size or recipe changed since
                ``plan`` was made.
        """
        with self._locks.hold_all(plan.item_ids):
            try:
                record = self._commit_locked(plan, actor_id, notes, produced_on)
                with translate_db_errors("commit"):
                    self._session.commit()
                return record
            except Exception:
                self._session.rollback()
                raise

    def produce(
        self,
        product_id: UUID,
        quantity: int | Decimal | str,
        actor_id: UUID,
        notes: str | None = None,
        produced_on: date | None = None,
    ) -> ProductionRunRecord:
        """Plan and commit in one unit of work, under the ingredient locks."""
        spec, _ = self._spec_and_stock(product_id)
        with self._locks.hold_all(line.item_id for line in spec.recipe):
            try:
                plan = self.plan(product_id, quantity)
                record = self._commit_locked(plan, actor_id, notes, produced_on)
                with translate_db_errors("commit"):
                    self._session.commit()
                return record
            except Exception:
                self._session.rollback()
                raise

    def _check_plan_current(self, plan: ProductionPlan, product: Product) -> None:
        """Refuse a plan built from another batch size or recipe than the product's current one."""
        with translate_db_errors("load_recipe"):
            self._session.refresh(product)
            lines = self._session.execute(
                select(ProductRecipe)
                .where(ProductRecipe.product_id == product.id)
                .execution_options(populate_existing=True)
            ).scalars().all()

        if plan.batch_size != product.batch_size:
            raise PlanConflictError(
                product.id,
                f"batch size changed from {plan.batch_size} to {product.batch_size}",
            )
        batch_count(plan.quantity, product.batch_size)

        expected = {line.inventory_item_id: line.amount_required * plan.batches for line in lines}
        planned = {d.item_id: d.amount for d in plan.deductions}
        if expected != planned:
            logger.warning(
                "production_plan_outdated",
                extra={"product_id": str(product.id), "planned_items": len(planned)},
            )
            raise PlanConflictError(product.id, "recipe changed since planning")

    def _commit_locked(
        self,
        plan: ProductionPlan,
        actor_id: UUID,
        notes: str | None,
        produced_on: date | None,
    ) -> ProductionRunRecord:
        product = self._product(plan.product_id)
        self._check_plan_current(plan, product)

        with LogContext.bind(actor_id=actor_id):
            for deduction in sorted(plan.deductions, key=lambda d: str(d.item_id)):
                item = self._ledger.lock_item(deduction.item_id)
                if item.version != deduction.version:
                    logger.warning(
                        "production_stock_moved",
                        extra={
                            "item_id": str(item.id),
                            "planned_version": deduction.version,
                            "actual_version": item.version,
                        },
                    )
                    raise StockConflictError(item.id, deduction.version, item.version)
                if item.current_quantity < deduction.amount:
                    raise InsufficientStockError(
                        item.id, item.name, item.current_quantity, deduction.amount
                    )

            with translate_db_errors("commit_production_run"):
                run_number = self._sequences.next_value(SequenceService.PRODUCTION_RUN)
                run = ProductionRun(
                    run_number=run_number,
                    product_id=product.id,
                    quantity_produced=plan.quantity,
                    produced_on=produced_on or self._clock.today(),
                    cost=plan.total_cost,
                    ingredients_deducted=[
                        DeductedIngredient(
                            item_id=d.item_id,
                            item_name=d.item_name,
                            amount=d.amount,
                            unit=d.unit,
                            unit_cost=d.unit_cost,
                            line_cost=d.line_cost,
                        ).to_json()
                        for d in plan.deductions
                    ],
                    notes=notes,
                    created_by_id=actor_id,
                )
                self._session.add(run)
                self._session.flush()

            with LogContext.bind(production_run_id=run.id):
                reason = f"Production run #{run_number}"
                for deduction in plan.deductions:
                    self._ledger.record_adjustment(
                        deduction.item_id,
                        -deduction.amount,
                        reason,
                        actor_id,
                        production_run_id=run.id,
                    )

                logger.info(
                    "production_run_committed",
                    extra={
                        "run_number": run_number,
                        "product_id": str(product.id),
                        "quantity": plan.quantity,
                        "cost": plan.total_cost,
                        "ingredients": len(plan.deductions),
                    },
                )
            return self._run_record(run)

    def reverse(self, run_id: UUID, actor_id: UUID, reason: str | None = None) -> ProductionRunRecord:
        """
        Reverse a production run: put every deducted ingredient back.

        The run stays in history, flagged ``is_reversed``; the compensating
        adjustments are linked to it.
        """
        run = self._session.get(ProductionRun, run_id)
        if run is None:
            raise ProductionRunNotFoundError(run_id)
        deducted = [DeductedIngredient.from_json(d) for d in run.ingredients_deducted]

        with self._locks.hold_all([run_id, *(d.item_id for d in deducted)]):
            try:
                with translate_db_errors("reverse_production_run"):
                    run = self._session.execute(
                        select(ProductionRun)
                        .where(ProductionRun.id == run_id)
                        .with_for_update()
                        .execution_options(populate_existing=True)
                    ).scalar_one()
                if run.is_reversed:
                    raise ProductionRunAlreadyReversedError(run_id)

                with LogContext.bind(actor_id=actor_id, production_run_id=run.id):
                    note = f"Reversal of production run #{run.run_number}"
                    restock = sorted(deducted, key=lambda d: str(d.item_id))
                    # Row-lock every item before the first ledger write takes the sequence row
                    for line in restock:
                        self._ledger.lock_item(line.item_id)
                    for line in restock:
                        self._ledger.record_adjustment(
                            line.item_id,
                            line.amount,
                            note,
                            actor_id,
                            production_run_id=run.id,
                        )

                    run.is_reversed = True
                    run.reversed_at = self._clock.now()
                    run.reversal_reason = reason
                    run.updated_by_id = actor_id
                    with translate_db_errors("reverse_production_run"):
                        self._session.flush()
                        self._session.commit()

                    logger.info(
                        "production_run_reversed",
                        extra={"run_number": run.run_number, "reason": reason},
                    )
                return self._run_record(run)
            except Exception:
                self._session.rollback()
                raise

    def get_run(self, run_id: UUID) -> ProductionRunRecord:
        run = self._session.get(ProductionRun, run_id)
        if run is None:
            raise ProductionRunNotFoundError(run_id)
        return self._run_record(run)
