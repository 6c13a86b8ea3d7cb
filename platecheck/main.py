# platecheck/main.py
"""
Application entry point.
Builds the storage layer and both services once per process and hands them
to the caller as a single AppContext.
"""

from dataclasses import dataclass

from sqlalchemy.engine import Engine

from platecheck.config import settings
from platecheck.database import create_tables, make_engine, make_session_factory
from platecheck.services.identity_service import IdentityStore
from platecheck.services.vehicle_service import VehicleRegistry
from platecheck.storage.kv_store import KeyValueStore
from platecheck.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class AppContext:
    engine: Engine
    store: KeyValueStore
    identity: IdentityStore
    vehicles: VehicleRegistry
    is_first_launch: bool

    def close(self):
        logger.info("🛑 PlateCheck shutting down...")
        self.engine.dispose()


async def create_app(database_url: str = None, seed_demo_vehicles: bool = None) -> AppContext:
    """
    Startup sequence: create tables, run the first-launch check (which seeds
    demo accounts), optionally seed demo vehicles, then restore the session.
    """
    logger.info("🚀 PlateCheck starting up...")
    engine = make_engine(database_url)
    create_tables(engine)
    logger.info("✅ Database tables ready")

    store = KeyValueStore(make_session_factory(engine))
    identity = IdentityStore(store)
    vehicles = VehicleRegistry(store)

    is_first_launch = await identity.check_first_launch()
    if is_first_launch:
        logger.info("👋 First launch detected")

    if seed_demo_vehicles is None:
        seed_demo_vehicles = settings.SEED_DEMO_VEHICLES
    if seed_demo_vehicles:
        await vehicles.bootstrap_demo_vehicles()

    user = await identity.restore_session()
    if user:
        logger.info(f"👤 Restored session for {user.email} ({user.role.value})")

    return AppContext(
        engine=engine,
        store=store,
        identity=identity,
        vehicles=vehicles,
        is_first_launch=is_first_launch,
    )
