"""Admin cylinder stock and batch endpoints."""

import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.dependencies import require_admin
from ..core.exceptions import ProblemDetailsException
from ..models.user import User
from ..schemas.common import MessageResponse
from ..schemas.inventory import (
    AdjustStockRequest,
    AdjustStockResponse,
    CreateBatchRequest,
    CylinderBatch,
    StockAdjustment,
    StockSummary,
    UpdateBatchRequest,
)
from ..services.inventory_service import ADJUSTMENT_HISTORY, RECENT_ADJUSTMENTS, InventoryService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/inventory", tags=["admin-inventory"])

DB_DEPENDENCY = Depends(get_db)
ADMIN_DEPENDENCY = Depends(require_admin)


def convert_adjustment_to_schema(adjustment_model) -> StockAdjustment:
    """Convert stock adjustment model to schema."""
    return StockAdjustment(
        id=str(adjustment_model.id),
        delta=adjustment_model.delta,
        reason=adjustment_model.reason,
        type=adjustment_model.type,
        actor=adjustment_model.actor,
        total_before=adjustment_model.total_before,
        total_after=adjustment_model.total_after,
        batch_id=str(adjustment_model.batch_id) if adjustment_model.batch_id else None,
        booking_id=str(adjustment_model.booking_id) if adjustment_model.booking_id else None,
        created_at=adjustment_model.created_at,
    )


def convert_batch_to_schema(batch_model) -> CylinderBatch:
    return CylinderBatch(
        id=str(batch_model.id),
        supplier=batch_model.supplier,
        invoice_no=batch_model.invoice_no,
        quantity=batch_model.quantity,
        received_at=batch_model.received_at,
        notes=batch_model.notes,
        status=batch_model.status,
        created_at=batch_model.created_at,
    )


@router.get("", response_model=StockSummary)
async def get_stock(
    admin: User = ADMIN_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
) -> StockSummary:
    """Current stock total with the most recent adjustments."""
    inventory_service = InventoryService(db)
    stock = await inventory_service.get_stock()
    adjustments = await inventory_service.list_adjustments(limit=RECENT_ADJUSTMENTS)
    await db.commit()
    return StockSummary(
        total_available=stock.total_available,
        updated_at=stock.updated_at,
        recent_adjustments=[convert_adjustment_to_schema(a) for a in adjustments],
    )


@router.post("/adjust", response_model=AdjustStockResponse)
async def adjust_stock(
    request: AdjustStockRequest,
    admin: User = ADMIN_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
) -> AdjustStockResponse:
    """
    Add or remove cylinders.

    The stock never goes below zero; such adjustments are rejected with 409.
    """
    inventory_service = InventoryService(db)

    try:
        adjustment, total, batch = await inventory_service.adjust_stock(request, admin.email)
        return AdjustStockResponse(
            adjustment=convert_adjustment_to_schema(adjustment),
            total_available=total,
            batch=convert_batch_to_schema(batch) if batch else None,
        )

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in stock adjustment",
            extra={"delta": request.delta, "actor": admin.email, "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.get("/adjustments", response_model=List[StockAdjustment])
async def list_adjustments(
    limit: int = Query(ADJUSTMENT_HISTORY, ge=1, le=500),
    admin: User = ADMIN_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
) -> List[StockAdjustment]:
    adjustments = await InventoryService(db).list_adjustments(limit=limit)
    return [convert_adjustment_to_schema(a) for a in adjustments]


@router.get("/batches", response_model=List[CylinderBatch])
async def list_batches(
    admin: User = ADMIN_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
) -> List[CylinderBatch]:
    batches = await InventoryService(db).list_batches()
    return [convert_batch_to_schema(b) for b in batches]


@router.post("/batches", response_model=CylinderBatch, status_code=201)
async def create_batch(
    request: CreateBatchRequest,
    admin: User = ADMIN_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
) -> CylinderBatch:
    """Record a supplier delivery; its quantity is added to stock."""
    inventory_service = InventoryService(db)

    try:
        batch = await inventory_service.create_batch(request, admin.email)
        return convert_batch_to_schema(batch)

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in batch creation",
            extra={"supplier": request.supplier, "quantity": request.quantity, "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.get("/batches/{batch_id}", response_model=CylinderBatch)
async def get_batch(
    batch_id: UUID,
    admin: User = ADMIN_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
) -> CylinderBatch:
    return convert_batch_to_schema(await InventoryService(db).get_batch_or_raise(batch_id))


@router.put("/batches/{batch_id}", response_model=CylinderBatch)
async def update_batch(
    batch_id: UUID,
    request: UpdateBatchRequest,
    admin: User = ADMIN_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
) -> CylinderBatch:
    return convert_batch_to_schema(await InventoryService(db).update_batch(batch_id, request))


@router.delete("/batches/{batch_id}", response_model=MessageResponse)
async def delete_batch(
    batch_id: UUID,
    admin: User = ADMIN_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
) -> MessageResponse:
    """Remove a batch and take its quantity back out of stock."""
    total = await InventoryService(db).delete_batch(batch_id, admin.email)
    return MessageResponse(message=f"Batch deleted; {total} cylinders in stock")
