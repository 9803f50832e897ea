#!/usr/bin/env python3
"""Setup script for the gas agency API: migrations, first admin and sample data."""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

# Add the server directory to the Python path
server_dir = Path(__file__).parent.parent / "server"
sys.path.insert(0, str(server_dir))

from alembic import command
from alembic.config import Config
from sqlalchemy import func, select

from gas_agency.core.config import settings
from gas_agency.core.database import async_session_factory
from gas_agency.core.security import hash_password
from gas_agency.models import *  # Import all models to ensure they're registered

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def setup_database():
    """Bring the schema up to the latest migration."""
    logger.info("Setting up database...")

    alembic_cfg = Config(str(server_dir / "db" / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(server_dir / "db" / "alembic"))

    logger.info("Running database migrations...")
    command.upgrade(alembic_cfg, "head")
    logger.info("Database migrations completed")


async def create_admin(email: str, password: str):
    """Create the administrator account unless one with that email exists."""
    async with async_session_factory() as db:
        existing = (await db.execute(select(User).where(User.email == email.lower()))).scalar_one_or_none()
        if existing is not None:
            logger.info(f"Admin {email} already exists, skipping...")
            return

        db.add(User(
            email=email.lower(),
            name="Administrator",
            user_id="admin",
            role=UserRole.ADMIN,
            remaining_quota=0,
            password_hash=hash_password(password),
            email_verified=True,
        ))
        await db.commit()
        logger.info(f"Admin {email} created")


async def create_sample_data():
    """Seed business settings, opening stock and two delivery partners."""
    logger.info("Creating sample data...")

    async with async_session_factory() as db:
        try:
            partners = (await db.execute(select(func.count()).select_from(DeliveryPartner))).scalar_one()
            if partners > 0:
                logger.info("Sample data already exists, skipping...")
                return

            if await db.get(SystemSetting, DEFAULT_SETTINGS_ID) is None:
                db.add(SystemSetting(
                    id=DEFAULT_SETTINGS_ID,
                    upi_id=settings.admin_upi_id,
                    price_per_cylinder=settings.price_per_cylinder,
                ))

            stock = await db.get(CylinderStock, DEFAULT_STOCK_ID)
            if stock is None:
                stock = CylinderStock(id=DEFAULT_STOCK_ID, total_available=0)
                db.add(stock)
                await db.flush()

            batch = CylinderBatch(supplier="Bharat Gas Depot", invoice_no="OPEN-001", quantity=200)
            db.add(batch)
            await db.flush()
            db.add(StockAdjustment(
                stock_id=DEFAULT_STOCK_ID,
                delta=200,
                reason="Opening stock",
                type=AdjustmentType.RECEIVE,
                actor="setup",
                total_before=stock.total_available,
                total_after=stock.total_available + 200,
                batch_id=batch.id,
            ))
            stock.total_available += 200

            db.add(DeliveryPartner(name="Ravi Kumar", phone="9876543210", vehicle_number="KA01AB1234",
                                   service_area="North"))
            db.add(DeliveryPartner(name="Suresh Patil", phone="9876501234", vehicle_number="KA02CD5678",
                                   service_area="South"))

            await db.commit()
            logger.info("Sample data created successfully!")

        except Exception as e:
            await db.rollback()
            logger.error(f"Failed to create sample data: {e}")
            raise


async def main(args):
    """Main setup function."""
    logger.info("Starting gas agency API setup...")

    # alembic's env runs its own event loop
    await asyncio.to_thread(setup_database)

    if args.admin_email:
        await create_admin(args.admin_email, args.admin_password)

    if not args.skip_sample_data:
        await create_sample_data()

    logger.info("Setup completed successfully!")
    logger.info("You can now start the API server with: cd server && uvicorn gas_agency.main:app --reload")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--admin-email", default=os.getenv("ADMIN_EMAIL"))
    parser.add_argument("--admin-password", default=os.getenv("ADMIN_PASSWORD", "changeme123"))
    parser.add_argument("--skip-sample-data", action="store_true")
    asyncio.run(main(parser.parse_args()))
