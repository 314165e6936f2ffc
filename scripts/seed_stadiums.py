#!/usr/bin/env python3
"""
Seed database with stadiums and users from CSV files.

Reads:
  - apps/matching/seed/stadiums.csv -> stadiums + stadium_activity_types
  - apps/matching/seed/users.csv    -> users

Idempotent: rows whose name / id already exist are skipped.
"""

import asyncio
import csv
import os
import sys
from pathlib import Path

# Add apps/ to path so the matching package resolves
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, os.path.join(project_root, "apps"))

from sqlalchemy import select
from matching.database.db import AsyncSessionLocal, init_database
from matching.database.models import Stadium, User
from matching.services import stadium_service, user_service

SEED_DIR = Path(project_root) / "apps" / "matching" / "seed"


async def seed_stadiums(session) -> int:
    """Seed stadiums from CSV. Returns count of new rows."""
    csv_path = SEED_DIR / "stadiums.csv"
    if not csv_path.exists():
        print(f"  CSV not found: {csv_path}")
        return 0

    created = 0
    with open(csv_path, "r", encoding="utf-8") as f:
        for row in csv.DictReader(f):
            result = await session.execute(select(Stadium.id).where(Stadium.name == row["name"]))
            if result.scalar_one_or_none() is not None:
                continue
            await stadium_service.create_stadium(
                session,
                name=row["name"],
                available_types=[t.strip() for t in row["available_type"].split("|") if t.strip()],
                belong_at=row["belong_at"],
                max_capacity=int(row["max_players"]),
            )
            created += 1
    return created


async def seed_users(session) -> int:
    """Seed users from CSV. Returns count of new rows."""
    csv_path = SEED_DIR / "users.csv"
    if not csv_path.exists():
        print(f"  CSV not found: {csv_path}")
        return 0

    created = 0
    with open(csv_path, "r", encoding="utf-8") as f:
        for row in csv.DictReader(f):
            result = await session.execute(select(User.id).where(User.id == row["id"]))
            if result.scalar_one_or_none() is not None:
                continue
            await user_service.create_user(
                session,
                user_id=row["id"],
                unit=row["unit"],
                name=row.get("name") or None,
                rank=int(row["rank"]) if row.get("rank") else 0,
            )
            created += 1
    return created


async def main():
    """Run all seed operations."""
    print("Seeding matching data...")
    await init_database()

    async with AsyncSessionLocal() as session:
        stadiums_created = await seed_stadiums(session)
        print(f"  Stadiums: {stadiums_created} created")

        users_created = await seed_users(session)
        print(f"  Users: {users_created} created")

    print("Done.")


if __name__ == "__main__":
    asyncio.run(main())
