"""Seed script for TillDesk reference and demo data."""

import asyncio
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tilldesk.core.db import AsyncSessionLocal
from tilldesk.models import Branch, DenominationKind, DenominationType, Register, User

# Pakistani rupee: notes then coins, largest first
DEFAULT_DENOMINATIONS = [
    ("Rs 5000", Decimal("5000.00"), DenominationKind.NOTE),
    ("Rs 1000", Decimal("1000.00"), DenominationKind.NOTE),
    ("Rs 500", Decimal("500.00"), DenominationKind.NOTE),
    ("Rs 100", Decimal("100.00"), DenominationKind.NOTE),
    ("Rs 50", Decimal("50.00"), DenominationKind.NOTE),
    ("Rs 20", Decimal("20.00"), DenominationKind.NOTE),
    ("Rs 10", Decimal("10.00"), DenominationKind.NOTE),
    ("Rs 5", Decimal("5.00"), DenominationKind.COIN),
    ("Rs 2", Decimal("2.00"), DenominationKind.COIN),
    ("Rs 1", Decimal("1.00"), DenominationKind.COIN),
]

DEMO_USERS = [
    ("Ayesha", "Khan"),
    ("Bilal", "Ahmed"),
]


async def seed_denominations(db: AsyncSession) -> list[DenominationType]:
    """Create the default denomination catalog if empty."""
    result = await db.execute(select(DenominationType).limit(1))
    if result.scalar_one_or_none():
        print("ℹ️  Denominations already exist, skipping...")
        result = await db.execute(select(DenominationType).order_by(DenominationType.sort_order))
        return list(result.scalars().all())

    denominations = [
        DenominationType(name=name, value=value, kind=kind.value, is_active=True, sort_order=index)
        for index, (name, value, kind) in enumerate(DEFAULT_DENOMINATIONS, start=1)
    ]
    db.add_all(denominations)
    await db.flush()
    print(f"✅ Created {len(denominations)} denomination types")
    return denominations


async def seed_branch_with_registers(db: AsyncSession) -> Branch:
    """Create a demo branch with two registers."""
    result = await db.execute(select(Branch).limit(1))
    branch = result.scalar_one_or_none()
    if branch:
        print("ℹ️  Branches already exist, skipping...")
        return branch

    branch = Branch(name="Main Branch", is_active=True)
    db.add(branch)
    await db.flush()

    db.add_all(
        [
            Register(branch_id=branch.id, name="Front Counter", code="REG-01"),
            Register(branch_id=branch.id, name="Back Counter", code="REG-02"),
        ]
    )
    await db.flush()
    print("✅ Created 1 branch with 2 registers")
    return branch


async def seed_users(db: AsyncSession) -> list[User]:
    """Mirror a couple of operators from the identity provider."""
    result = await db.execute(select(User).limit(1))
    if result.scalar_one_or_none():
        print("ℹ️  Users already exist, skipping...")
        result = await db.execute(select(User))
        return list(result.scalars().all())

    users = [
        User(
            email=f"{first_name.lower()}.{last_name.lower()}@tilldesk.local",
            first_name=first_name,
            last_name=last_name,
            is_active=True,
        )
        for first_name, last_name in DEMO_USERS
    ]
    db.add_all(users)
    await db.flush()
    print(f"✅ Created {len(users)} users")
    return users


async def main():
    """Run seed script."""
    print("🌱 Starting TillDesk seed script...\n")

    async with AsyncSessionLocal() as db:
        denominations = await seed_denominations(db)
        branch = await seed_branch_with_registers(db)
        users = await seed_users(db)
        await db.commit()

    print("\n🎉 Seed complete!")
    print(f"   💵 Denominations: {len(denominations)}")
    print(f"   🏪 Branch: {branch.name}")
    print(f"   👥 Users: {len(users)}")


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
