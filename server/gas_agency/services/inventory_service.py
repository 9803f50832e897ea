"""Inventory service for cylinder stock and supplier batches."""

import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import ConflictError, NotFoundError
from ..core.observability import metrics_collector
from ..models.inventory import (
    DEFAULT_STOCK_ID,
    AdjustmentType,
    CylinderBatch,
    CylinderStock,
    StockAdjustment,
)
from ..schemas.inventory import AdjustStockRequest, CreateBatchRequest, UpdateBatchRequest

logger = logging.getLogger(__name__)

RECENT_ADJUSTMENTS = 20
ADJUSTMENT_HISTORY = 50


class NegativeStockError(ConflictError):
    """Exception when an adjustment would take stock below zero."""

    def __init__(self, requested_delta: int, current_total: int):
        super().__init__(
            detail=f"Cannot reduce stock by {abs(requested_delta)}. Only {current_total} cylinder(s) available",
            conflicting_resource={
                "requested_delta": requested_delta,
                "current_total": current_total,
            },
        )
        self.problem_details.update({
            "code": "INSUFFICIENT_STOCK",
            "retryable": False
        })


class InventoryService:
    """Service for stock adjustments and batch bookkeeping."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_stock(self, lock: bool = False) -> CylinderStock:
        """Return the stock row, creating an empty one on first access."""
        stmt = select(CylinderStock).where(CylinderStock.id == DEFAULT_STOCK_ID)
        if lock:
            stmt = stmt.with_for_update()
        stock = (await self.db.execute(stmt.execution_options(populate_existing=True))).scalar_one_or_none()
        if stock is None:
            stock = CylinderStock(id=DEFAULT_STOCK_ID, total_available=0)
            self.db.add(stock)
            await self.db.flush()
            logger.info("Cylinder stock initialised")
        return stock

    async def list_adjustments(self, limit: int = ADJUSTMENT_HISTORY) -> list[StockAdjustment]:
        stmt = (
            select(StockAdjustment)
            .where(StockAdjustment.stock_id == DEFAULT_STOCK_ID)
            .order_by(StockAdjustment.created_at.desc())
            .limit(limit)
        )
        return list((await self.db.execute(stmt)).scalars().all())

    async def _apply(
        self,
        delta: int,
        reason: str,
        adjustment_type: AdjustmentType,
        actor: str,
        batch_id: Optional[UUID] = None,
        booking_id: Optional[UUID] = None,
    ) -> tuple[CylinderStock, StockAdjustment]:
        stock = await self.get_stock(lock=True)
        new_total = stock.total_available + delta

        if new_total < 0:
            logger.warning(
                "Stock adjustment failed - would result in negative stock",
                extra={
                    "current_total": stock.total_available,
                    "requested_delta": delta,
                    "actor": actor,
                }
            )
            raise NegativeStockError(delta, stock.total_available)

        adjustment = StockAdjustment(
            stock_id=stock.id,
            delta=delta,
            reason=reason,
            type=adjustment_type,
            actor=actor,
            total_before=stock.total_available,
            total_after=new_total,
            batch_id=batch_id,
            booking_id=booking_id,
        )
        stock.total_available = new_total
        self.db.add(adjustment)
        return stock, adjustment

    async def adjust_stock(
        self, request: AdjustStockRequest, actor: str
    ) -> tuple[StockAdjustment, int, Optional[CylinderBatch]]:
        """
        Change the stock total and record the adjustment.

        A positive RECEIVE adjustment naming a supplier also records a batch.

        Returns:
            The adjustment, the new stock total and the batch if one was created

        Raises:
            NegativeStockError: If the stock would go below zero
        """
        adjustment_type = request.type or (AdjustmentType.RECEIVE if request.delta > 0 else AdjustmentType.ISSUE)

        batch = None
        if request.delta > 0 and adjustment_type == AdjustmentType.RECEIVE and request.supplier:
            batch = CylinderBatch(
                supplier=request.supplier,
                invoice_no=request.invoice_no,
                quantity=request.delta,
                received_at=datetime.utcnow(),
                notes=request.reason,
            )
            self.db.add(batch)
            await self.db.flush()

        stock, adjustment = await self._apply(
            request.delta,
            request.reason,
            adjustment_type,
            actor,
            batch_id=batch.id if batch else None,
        )
        await self.db.commit()
        await self.db.refresh(adjustment)

        metrics_collector.set_stock_available(stock.total_available)
        logger.info(
            "Stock adjusted successfully",
            extra={
                "adjustment_id": str(adjustment.id),
                "delta": request.delta,
                "adjustment_type": adjustment_type.value,
                "total_before": adjustment.total_before,
                "total_after": adjustment.total_after,
                "actor": actor,
            }
        )
        return adjustment, stock.total_available, batch

    # Batches

    async def list_batches(self) -> list[CylinderBatch]:
        stmt = select(CylinderBatch).order_by(CylinderBatch.received_at.desc())
        return list((await self.db.execute(stmt)).scalars().all())

    async def get_batch_or_raise(self, batch_id: UUID) -> CylinderBatch:
        batch = await self.db.get(CylinderBatch, batch_id)
        if batch is None:
            raise NotFoundError(resource_type="batch", resource_id=str(batch_id))
        return batch

    async def create_batch(self, request: CreateBatchRequest, actor: str) -> CylinderBatch:
        """Record a supplier delivery and add it to stock."""
        batch = CylinderBatch(
            supplier=request.supplier,
            invoice_no=request.invoice_no,
            quantity=request.quantity,
            received_at=request.received_at or datetime.utcnow(),
            notes=request.notes,
        )
        self.db.add(batch)
        await self.db.flush()

        stock, _ = await self._apply(
            request.quantity,
            f"Batch received from {request.supplier}",
            AdjustmentType.RECEIVE,
            actor,
            batch_id=batch.id,
        )
        await self.db.commit()
        await self.db.refresh(batch)

        metrics_collector.set_stock_available(stock.total_available)
        logger.info(
            "Batch created",
            extra={"batch_id": str(batch.id), "quantity": batch.quantity, "actor": actor},
        )
        return batch

    async def update_batch(self, batch_id: UUID, request: UpdateBatchRequest) -> CylinderBatch:
        batch = await self.get_batch_or_raise(batch_id)
        for field, value in request.model_dump(exclude_unset=True).items():
            setattr(batch, field, value)
        await self.db.commit()
        await self.db.refresh(batch)
        return batch

    async def delete_batch(self, batch_id: UUID, actor: str) -> int:
        """
        Remove a batch and take its quantity back out of stock.

        Returns:
            The new stock total

        Raises:
            NegativeStockError: If the stock no longer holds the batch quantity
        """
        batch = await self.get_batch_or_raise(batch_id)
        stock, _ = await self._apply(
            -batch.quantity,
            f"Batch from {batch.supplier} removed",
            AdjustmentType.CORRECTION,
            actor,
        )
        await self.db.delete(batch)
        await self.db.commit()

        metrics_collector.set_stock_available(stock.total_available)
        logger.info(
            "Batch deleted",
            extra={"batch_id": str(batch_id), "quantity": batch.quantity, "actor": actor},
        )
        return stock.total_available
