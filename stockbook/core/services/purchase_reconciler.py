"""
Purchase lifecycle reconciler.

Owns every stock, price and ledger side effect of a purchase changing status,
being created already completed, or being deleted. Each public operation runs
inside a single unit-of-work transaction: all effects commit together or none
do.
"""

import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from stockbook.config import get_logger
from stockbook.core.entities.catalog import ItemType, StockLevel, TargetKey
from stockbook.core.entities.purchase import (
    PriceUpdateMode,
    Purchase,
    PurchaseItem,
    PurchaseStatus,
)
from stockbook.core.entities.stock_history import MovementType, StockHistory
from stockbook.core.exceptions import (
    InsufficientStockError,
    InvalidStatusError,
    InvalidTransitionError,
    MaterialNotFoundError,
    NotFoundError,
    ProductNotFoundError,
    PurchaseAccessDeniedError,
    PurchaseNotFoundError,
    StockbookError,
    TransactionFailedError,
    ValidationError,
)
from stockbook.core.interfaces.purchase_store import IPurchaseStore
from stockbook.core.interfaces.unit_of_work import IPurchaseTransaction, IUnitOfWork
from stockbook.core.services.pricing import compute_prices, resolve_price_mode

logger = get_logger(__name__)

COMPLETED_LABEL = "Purchase completed"
CANCELLED_LABEL = "Purchase cancelled"
DELETED_LABEL = "Purchase deleted"


@dataclass
class BulkDeleteResult:
    """Outcome of deleting several purchases in one transaction."""

    deleted_ids: list[str] = field(default_factory=list)
    reversed_ids: list[str] = field(default_factory=list)
    skipped_ids: list[str] = field(default_factory=list)

    @property
    def deleted_count(self) -> int:
        return len(self.deleted_ids)


class PurchaseReconciler:
    """
    Applies purchase status transitions to stock, prices and the ledger.

    Transition table (old -> new):
        non-completed -> completed   stock in, ledger "in", optional price update
        completed -> cancelled       stock out, ledger "out", price untouched
        completed -> pending         rejected
        anything else                status write only (if it changed)
    """

    def __init__(
        self,
        unit_of_work: IUnitOfWork,
        purchase_store: IPurchaseStore,
        *,
        strict_stock: bool = False,
        invoice_prefix: str = "INV/PO",
    ):
        self._unit_of_work = unit_of_work
        self._purchase_store = purchase_store
        self._strict_stock = strict_stock
        self._invoice_prefix = invoice_prefix

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    async def set_purchase_status(
        self,
        purchase_id: str,
        status: PurchaseStatus | str,
        user_id: str,
    ) -> Purchase:
        """
        Move a purchase to a new status and apply its side effects.

        Raises:
            InvalidStatusError: status is not a known purchase status.
            PurchaseNotFoundError: no such purchase.
            PurchaseAccessDeniedError: purchase belongs to another user.
            InvalidTransitionError: completed -> pending.
            TransactionFailedError: storage failed; nothing was written.
        """
        requested = self._parse_status(status)

        existing = await self._purchase_store.get_purchase(purchase_id)
        self._check_owner(existing, purchase_id, user_id)

        async with self._transaction("set_purchase_status") as tx:
            purchase = self._check_owner(
                await tx.load_purchase(purchase_id), purchase_id, user_id
            )

            old_status = purchase.status
            if old_status == requested:
                logger.info(
                    "purchase_status_unchanged",
                    purchase_id=purchase_id,
                    status=requested.value,
                )
            else:
                if requested == PurchaseStatus.COMPLETED:
                    await self._apply_completion(
                        tx, purchase, resolve_price_mode(purchase), COMPLETED_LABEL
                    )
                elif old_status == PurchaseStatus.COMPLETED:
                    if requested == PurchaseStatus.PENDING:
                        raise InvalidTransitionError(
                            purchase_id, old_status.value, requested.value
                        )
                    await self._apply_reversal(tx, purchase, CANCELLED_LABEL)

                await self._write_status(tx, purchase, requested)
                logger.info(
                    "purchase_status_changed",
                    purchase_id=purchase_id,
                    from_status=old_status.value,
                    to_status=requested.value,
                    items=len(purchase.items),
                )

        return await self._refetch(purchase_id)

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def complete_purchase_creation(
        self,
        draft: Purchase,
        user_id: str,
        price_mode: PriceUpdateMode | None = None,
        *,
        ledger_label: str = COMPLETED_LABEL,
    ) -> Purchase:
        """
        Insert a new purchase and, if it is already completed, apply the
        completion effects in the same transaction.

        Args:
            draft: Purchase to insert; id, invoice number and totals are
                filled in when missing.
            user_id: Acting user, becomes the owner.
            price_mode: Forced price strategy. Defaults to weighted average
                when auto_update_price is set, otherwise no price change.
            ledger_label: Prefix of the ledger row descriptions.
        """
        self._validate_draft(draft)

        purchase = draft.model_copy(
            update={
                "id": draft.id or uuid.uuid4().hex,
                "user_id": user_id,
                "version": 1,
            }
        )
        mode = resolve_price_mode(purchase, price_mode)

        async with self._transaction("complete_purchase_creation") as tx:
            for item in purchase.items:
                level = await tx.get_target(item.type, item.target_id or "")
                if level is None or level.user_id != user_id:
                    raise self._target_not_found(item)

            if purchase.invoice_number:
                if await tx.invoice_number_exists(user_id, purchase.invoice_number):
                    raise ValidationError(
                        "invoice_number",
                        "Invoice number already exists",
                        purchase.invoice_number,
                    )
            else:
                purchase.invoice_number = await self.generate_invoice_number(
                    tx, user_id, purchase.created_at
                )

            purchase = await tx.insert_purchase(purchase)

            if purchase.status == PurchaseStatus.COMPLETED:
                await self._apply_completion(tx, purchase, mode, ledger_label)

            logger.info(
                "purchase_created",
                purchase_id=purchase.id,
                invoice_number=purchase.invoice_number,
                status=purchase.status.value,
                price_mode=mode.value,
                items=len(purchase.items),
            )

        return await self._refetch(purchase.id or "")

    async def generate_invoice_number(
        self,
        tx: IPurchaseTransaction,
        user_id: str,
        when: datetime,
    ) -> str:
        """
        Build the next invoice number for the user's day.

        Format: <prefix>/<YYMMDD>/<NNN>, NNN being the 1-based count of the
        day's purchases. Skips forward past numbers already taken.
        """
        day_start = when.replace(hour=0, minute=0, second=0, microsecond=0)
        day_end = day_start + timedelta(days=1)
        sequence = await tx.count_purchases_between(user_id, day_start, day_end) + 1

        while True:
            candidate = f"{self._invoice_prefix}/{when:%y%m%d}/{sequence:03d}"
            if not await tx.invoice_number_exists(user_id, candidate):
                return candidate
            sequence += 1

    # ------------------------------------------------------------------
    # Deletion
    # ------------------------------------------------------------------

    async def delete_purchase(self, purchase_id: str, user_id: str) -> None:
        """Delete a purchase, reversing its stock first if it was completed."""
        existing = await self._purchase_store.get_purchase(purchase_id)
        self._check_owner(existing, purchase_id, user_id)

        async with self._transaction("delete_purchase") as tx:
            purchase = self._check_owner(
                await tx.load_purchase(purchase_id), purchase_id, user_id
            )

            if purchase.status == PurchaseStatus.COMPLETED:
                await self._apply_reversal(tx, purchase, DELETED_LABEL)
            await tx.delete_purchase(purchase_id)

        logger.info(
            "purchase_deleted",
            purchase_id=purchase_id,
            reversed=purchase.status == PurchaseStatus.COMPLETED,
        )

    async def bulk_delete_purchases(
        self, purchase_ids: list[str], user_id: str
    ) -> BulkDeleteResult:
        """
        Delete several purchases in one transaction.

        Ids that do not exist or belong to another user are skipped and
        reported rather than failing the batch.
        """
        if not purchase_ids:
            raise ValidationError("ids", "At least one purchase id is required", purchase_ids)

        result = BulkDeleteResult()
        async with self._transaction("bulk_delete_purchases") as tx:
            for purchase_id in dict.fromkeys(purchase_ids):
                purchase = await tx.load_purchase(purchase_id)
                if purchase is None or purchase.user_id != user_id:
                    result.skipped_ids.append(purchase_id)
                    continue

                if purchase.status == PurchaseStatus.COMPLETED:
                    await self._apply_reversal(tx, purchase, DELETED_LABEL)
                    result.reversed_ids.append(purchase_id)

                await tx.delete_purchase(purchase_id)
                result.deleted_ids.append(purchase_id)

        logger.info(
            "purchases_bulk_deleted",
            deleted=result.deleted_count,
            reversed=len(result.reversed_ids),
            skipped=len(result.skipped_ids),
        )
        return result

    # ------------------------------------------------------------------
    # Effects
    # ------------------------------------------------------------------

    async def _apply_completion(
        self,
        tx: IPurchaseTransaction,
        purchase: Purchase,
        mode: PriceUpdateMode,
        label: str,
    ) -> None:
        """Credit stock, write "in" ledger rows, then write prices."""
        snapshots: dict[TargetKey, StockLevel] = {}
        for item in purchase.items:
            if item.target_key in snapshots:
                continue
            level = await tx.get_target(item.type, item.target_id or "")
            if level is None:
                raise self._target_not_found(item)
            snapshots[item.target_key] = level

        prices = compute_prices(mode, purchase, snapshots)
        description = f"{label}: {purchase.display_reference}"

        for item in purchase.items:
            if not await tx.increment_stock(item.type, item.target_id or "", item.quantity):
                raise self._target_not_found(item)
            await tx.insert_stock_history(
                self._ledger_row(purchase, item, MovementType.IN, description)
            )
            logger.debug(
                "stock_incremented",
                purchase_id=purchase.id,
                item_type=item.type.value,
                target_id=item.target_id,
                quantity=item.quantity,
            )

        for (item_type, target_id), price in prices.items():
            await tx.set_price(item_type, target_id, price)
            logger.debug(
                "price_updated",
                purchase_id=purchase.id,
                item_type=item_type.value,
                target_id=target_id,
                old_price=snapshots[(item_type, target_id)].price,
                new_price=round(price, 4),
                mode=mode.value,
            )

    async def _apply_reversal(
        self,
        tx: IPurchaseTransaction,
        purchase: Purchase,
        label: str,
    ) -> None:
        """Debit stock and write "out" ledger rows. Prices are left as they are."""
        description = f"{label}: {purchase.display_reference}"

        for item in purchase.items:
            target_id = item.target_id or ""
            if self._strict_stock:
                level = await tx.get_target(item.type, target_id)
                if level is None:
                    raise self._target_not_found(item)
                if level.stock - item.quantity < 0:
                    raise InsufficientStockError(target_id, item.quantity, level.stock)

            if not await tx.increment_stock(item.type, target_id, -item.quantity):
                raise self._target_not_found(item)
            await tx.insert_stock_history(
                self._ledger_row(purchase, item, MovementType.OUT, description)
            )
            logger.debug(
                "stock_decremented",
                purchase_id=purchase.id,
                item_type=item.type.value,
                target_id=target_id,
                quantity=item.quantity,
            )

    async def _write_status(
        self,
        tx: IPurchaseTransaction,
        purchase: Purchase,
        status: PurchaseStatus,
    ) -> None:
        written = await tx.update_purchase_status(
            purchase.id or "", status, purchase.version
        )
        if not written:
            raise TransactionFailedError(
                "set_purchase_status",
                f"purchase {purchase.id} was modified concurrently",
            )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _transaction(self, operation: str) -> AsyncIterator[IPurchaseTransaction]:
        """Open a unit-of-work transaction, wrapping storage failures."""
        try:
            async with self._unit_of_work.transaction() as tx:
                yield tx
        except StockbookError:
            logger.warning("purchase_transaction_rolled_back", operation=operation)
            raise
        except Exception as e:
            logger.error(
                "purchase_transaction_failed",
                operation=operation,
                error=str(e),
            )
            raise TransactionFailedError(operation, str(e)) from e

    async def _refetch(self, purchase_id: str) -> Purchase:
        purchase = await self._purchase_store.get_purchase(purchase_id)
        if purchase is None:
            raise PurchaseNotFoundError(purchase_id)
        return purchase

    @staticmethod
    def _parse_status(status: PurchaseStatus | str) -> PurchaseStatus:
        try:
            return PurchaseStatus(status)
        except ValueError:
            raise InvalidStatusError(status, [s.value for s in PurchaseStatus]) from None

    @staticmethod
    def _check_owner(
        purchase: Purchase | None, purchase_id: str, user_id: str
    ) -> Purchase:
        if purchase is None:
            raise PurchaseNotFoundError(purchase_id)
        if purchase.user_id != user_id:
            raise PurchaseAccessDeniedError(purchase_id, user_id)
        return purchase

    @staticmethod
    def _target_not_found(item: PurchaseItem) -> NotFoundError:
        if item.type == ItemType.MATERIAL:
            return MaterialNotFoundError(item.material_id or "")
        return ProductNotFoundError(item.product_id or "")

    @staticmethod
    def _ledger_row(
        purchase: Purchase,
        item: PurchaseItem,
        movement: MovementType,
        description: str,
    ) -> StockHistory:
        return StockHistory(
            user_id=purchase.user_id,
            material_id=item.material_id if item.type == ItemType.MATERIAL else None,
            product_id=item.product_id if item.type == ItemType.PRODUCT else None,
            type=movement,
            quantity=item.quantity,
            description=description,
            reference=purchase.ledger_reference,
        )

    @staticmethod
    def _validate_draft(draft: Purchase) -> None:
        if not draft.supplier or not draft.supplier.strip():
            raise ValidationError("supplier", "Supplier is required", draft.supplier)
        if not draft.items:
            raise ValidationError("items", "At least one item is required")

        for index, item in enumerate(draft.items):
            field_name = f"items[{index}]"
            if item.type == ItemType.MATERIAL:
                if not item.material_id or item.product_id:
                    raise ValidationError(
                        field_name, "Material items need material_id and no product_id"
                    )
            elif not item.product_id or item.material_id:
                raise ValidationError(
                    field_name, "Product items need product_id and no material_id"
                )
            if item.quantity <= 0:
                raise ValidationError(
                    f"{field_name}.quantity", "Quantity must be greater than 0", item.quantity
                )
            if item.price < 0:
                raise ValidationError(
                    f"{field_name}.price", "Price must not be negative", item.price
                )

        for index, cost in enumerate(draft.additional_costs):
            if cost.amount < 0:
                raise ValidationError(
                    f"additional_costs[{index}].amount",
                    "Amount must not be negative",
                    cost.amount,
                )
