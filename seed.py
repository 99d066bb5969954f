"""
Seed script -- populates the database with sample data for reviewers.

Run after migrations:
    python seed.py

Creates:
  - 6 sample clients with starting bonus balances
  - 3 sample drivers
  - orders driven through the lifecycle manager so the ledger stays
    consistent: finished trips, a cancellation and one active order
"""

import asyncio

from sqlalchemy import text

from mytaxi.config import settings
from mytaxi.domain.bonus import policy_from_settings
from mytaxi.domain.entities import ClientIdentity, OrderRequest
from mytaxi.infrastructure.database import async_session_factory, engine
from mytaxi.infrastructure.locks import LocalLockProvider
from mytaxi.infrastructure.repositories import ClientRepository, DriverRepository
from mytaxi.services.lifecycle import OrderLifecycleManager


CLIENTS = [
    {"name": "Olena Kovalenko", "email": "olena@example.com", "phone_number": "+380671234501", "bonus_amount": 20.0},
    {"name": "Taras Shevchuk", "email": "taras@example.com", "phone_number": "+380671234502", "bonus_amount": 0.0},
    {"name": "Iryna Bondar", "email": "iryna@example.com", "phone_number": "+380671234503", "bonus_amount": 250.0},
    {"name": "Andrii Melnyk", "email": "andrii@example.com", "phone_number": "+380671234504", "bonus_amount": 5.5},
    {"name": "Sofiia Tkachenko", "email": "sofiia@example.com", "phone_number": "+380671234505", "bonus_amount": 0.0},
    {"name": "Maksym Kravets", "email": "maksym@example.com", "phone_number": "+380671234506", "bonus_amount": 75.0},
]

DRIVERS = [
    {"name": "Petro Lysenko", "email": "petro@example.com", "car": "Skoda Octavia AA1234BB"},
    {"name": "Oksana Moroz", "email": "oksana@example.com", "car": "Toyota Camry AA5678CC"},
    {"name": "Dmytro Savchenko", "email": "dmytro@example.com", "car": "Kia Niro AA9012EE"},
]

# (client index, price, pay_with_bonuses, origin, destination, outcome)
ORDERS = [
    (0, 150.0, False, "Khreshchatyk St, 22", "Boryspil Airport", "finish"),
    (0, 150.0, False, "Boryspil Airport", "Khreshchatyk St, 22", "cancel"),
    (2, 120.0, True, "Podil, Kontraktova Sq", "Obolon, Heroiv Dnipra St", "finish"),
    (3, 90.0, False, "Lva Tolstoho Sq", "Pechersk Lavra", "active"),
    (5, 60.0, True, "Zoloti Vorota", "Arsenalna", "created"),
]


async def seed():
    async with async_session_factory() as session:
        # Check if already seeded
        result = await session.execute(text("SELECT count(*) FROM users"))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        # ── Clients ───────────────────────────────────────────────────
        client_ids = []
        for c in CLIENTS:
            client = await ClientRepository(session).create_client(**c)
            client_ids.append(client.id)
        print(f"  Created {len(client_ids)} clients")

        # ── Drivers ───────────────────────────────────────────────────
        driver_ids = []
        for d in DRIVERS:
            driver = await DriverRepository(session).create_driver(**d)
            driver_ids.append(driver.id)
        print(f"  Created {len(driver_ids)} drivers")

        await session.commit()

    # ── Orders (through the lifecycle so bonuses add up) ──────────────
    manager = OrderLifecycleManager(
        async_session_factory,
        policy_from_settings(settings),
        LocalLockProvider(settings.lock_wait_seconds),
    )
    for i, (client_idx, price, bonuses, origin, destination, outcome) in enumerate(ORDERS):
        order = await manager.create_order(
            ClientIdentity(client_ids[client_idx]),
            OrderRequest(
                price=price,
                origin=origin,
                destination=destination,
                pay_with_bonuses=bonuses,
            ),
        )
        if outcome in ("finish", "active"):
            await manager.assign_driver(order.id, driver_ids[i % len(driver_ids)])
        if outcome == "finish":
            await manager.finish_order(order.id)
            await manager.rate_trip(order.id, 5)
        elif outcome == "cancel":
            await manager.cancel_order(order.hash)
    print(f"  Created {len(ORDERS)} orders")

    print("\nSeed complete!")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
