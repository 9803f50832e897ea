"""Unit tests for inventory service."""

import pytest

from gas_agency.models.inventory import AdjustmentType
from gas_agency.schemas.inventory import AdjustStockRequest, CreateBatchRequest, UpdateBatchRequest
from gas_agency.services.inventory_service import InventoryService, NegativeStockError


@pytest.mark.asyncio
async def test_stock_created_on_first_access(test_session):
    stock = await InventoryService(test_session).get_stock()
    assert stock.total_available == 0


@pytest.mark.asyncio
async def test_adjust_stock_records_history(test_session):
    service = InventoryService(test_session)

    adjustment, total, batch = await service.adjust_stock(
        AdjustStockRequest(delta=50, reason="Opening stock"), "admin@example.com"
    )
    assert total == 50
    assert batch is None
    assert adjustment.type == AdjustmentType.RECEIVE
    assert adjustment.total_before == 0
    assert adjustment.total_after == 50

    adjustment, total, _ = await service.adjust_stock(
        AdjustStockRequest(delta=-5, reason="Damaged valves", type=AdjustmentType.DAMAGE), "admin@example.com"
    )
    assert total == 45
    assert adjustment.type == AdjustmentType.DAMAGE

    history = await service.list_adjustments()
    assert len(history) == 2


@pytest.mark.asyncio
async def test_negative_stock_rejected(test_session):
    """Test that stock never goes below zero."""
    service = InventoryService(test_session)
    await service.adjust_stock(AdjustStockRequest(delta=10, reason="Opening stock"), "admin@example.com")

    with pytest.raises(NegativeStockError) as exc_info:
        await service.adjust_stock(AdjustStockRequest(delta=-11, reason="Issue to depot"), "admin@example.com")

    details = exc_info.value.problem_details
    assert details["status"] == 409
    assert details["code"] == "INSUFFICIENT_STOCK"
    assert "Only 10 cylinder(s) available" in details["detail"]

    await test_session.rollback()
    stock = await service.get_stock()
    assert stock.total_available == 10


@pytest.mark.asyncio
async def test_receiving_with_supplier_creates_batch(test_session):
    service = InventoryService(test_session)

    adjustment, total, batch = await service.adjust_stock(
        AdjustStockRequest(delta=30, reason="Weekly delivery", supplier="Bharat Gas Depot", invoice_no="INV-77"),
        "admin@example.com",
    )
    assert batch is not None
    assert batch.quantity == 30
    assert adjustment.batch_id == batch.id
    assert len(await service.list_batches()) == 1


@pytest.mark.asyncio
async def test_batch_lifecycle(test_session):
    service = InventoryService(test_session)

    batch = await service.create_batch(
        CreateBatchRequest(supplier="Indane Plant", quantity=40), "admin@example.com"
    )
    assert (await service.get_stock()).total_available == 40

    batch = await service.update_batch(batch.id, UpdateBatchRequest(notes="Checked"))
    assert batch.notes == "Checked"

    total = await service.delete_batch(batch.id, "admin@example.com")
    assert total == 0
    assert await service.list_batches() == []

    history = await service.list_adjustments()
    assert [a.delta for a in sorted(history, key=lambda a: a.total_before)] == [40, -40]


@pytest.mark.asyncio
async def test_delete_batch_after_stock_issued(test_session):
    service = InventoryService(test_session)
    batch = await service.create_batch(CreateBatchRequest(supplier="Indane Plant", quantity=20), "admin@example.com")
    await service.adjust_stock(AdjustStockRequest(delta=-15, reason="Issued"), "admin@example.com")

    with pytest.raises(NegativeStockError):
        await service.delete_batch(batch.id, "admin@example.com")
