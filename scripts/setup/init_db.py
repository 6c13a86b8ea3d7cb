"""
Initialize the database: creates the key-value table and seeds demo data.
Run once before first launch, or to inspect what is stored.
Usage: python scripts/setup/init_db.py [--no-demo-vehicles]
"""

import argparse
import asyncio
import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

from platecheck.config import settings
from platecheck.database import create_tables, engine, SessionLocal
from platecheck.models.kv_entry import KeyValueEntry
from platecheck.services.identity_service import IdentityStore
from platecheck.services.vehicle_service import VehicleRegistry
from platecheck.storage.kv_store import KeyValueStore
from sqlalchemy import text


async def seed(with_vehicles: bool):
    store = KeyValueStore(SessionLocal)
    accounts = await IdentityStore(store).bootstrap_demo_accounts()
    print(f"   {'✓ seeded' if accounts.data else '• already present'}: demo accounts")
    if with_vehicles:
        vehicles = await VehicleRegistry(store).bootstrap_demo_vehicles()
        print(f"   {'✓ seeded' if vehicles.data else '• already present'}: demo vehicles")


def main():
    parser = argparse.ArgumentParser(description="Create tables and seed PlateCheck demo data")
    parser.add_argument("--no-demo-vehicles", action="store_true", help="Skip the sample vehicles")
    args = parser.parse_args()

    print("🗄️  PlateCheck DB Initialization")
    print("=" * 40)
    print(f"📡 Database: {settings.DATABASE_URL}")

    # Test connection
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        print("✅ Database connection OK")
    except Exception as e:
        print(f"❌ Cannot connect to database: {e}")
        sys.exit(1)

    print("\n📋 Creating tables...")
    create_tables()
    print("✅ Tables created")

    print("\n🌱 Seeding demo data...")
    asyncio.run(seed(with_vehicles=not args.no_demo_vehicles))

    with SessionLocal() as db:
        keys = [row.key for row in db.query(KeyValueEntry).order_by(KeyValueEntry.key)]

    print(f"\n📊 Stored keys ({len(keys)} total):")
    for k in keys:
        print(f"   ✓ {k}")

    print("\n🎉 Database ready! Demo logins:")
    print("   admin@example.com / admin123")
    print("   user@example.com  / password123")


if __name__ == "__main__":
    main()
