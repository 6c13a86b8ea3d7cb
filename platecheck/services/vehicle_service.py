# platecheck/services/vehicle_service.py
"""
Vehicle registry: registration, the approval workflow, and working-set queries.

The full registry is stored under the `vehicles` key. Listing operations load
it and replace the in-memory working set (owner-scoped for users, complete
for admins); the find/search/statistics helpers only look at that working set.

Status workflow:
  pending ──approve──▶ approved
     └─────reject───▶ rejected
Approved and rejected are terminal.
"""

import asyncio
from datetime import datetime
from typing import Iterable, Optional, Union

from pydantic import ValidationError

from platecheck.config import settings
from platecheck.exceptions import (
    DuplicatePlateError,
    InvalidInputError,
    InvalidTransitionError,
    InvalidYearError,
    PlateCheckError,
    StorageError,
    VehicleNotFoundError,
)
from platecheck.schemas.result import OperationResult
from platecheck.schemas.vehicle import Vehicle, VehicleCreate, VehicleStats, VehicleStatus
from platecheck.services.stats_service import compute_statistics
from platecheck.storage.kv_store import VEHICLES_KEY, KeyValueStore
from platecheck.utils.ids import new_record_id
from platecheck.utils.logger import get_logger

logger = get_logger(__name__)

TERMINAL_STATUSES = {VehicleStatus.APPROVED, VehicleStatus.REJECTED}

DEMO_VEHICLES = [
    {"id": "1752023212591", "user_id": "user1", "plate_number": "ABC-123-XY",
     "make": "Toyota", "model": "Camry", "year": 2020, "color": "Blue",
     "vin": "JT2BF28K9X0123456", "status": VehicleStatus.PENDING,
     "owner": "John Doe", "documents": ["doc1.pdf", "doc2.pdf"]},
    {"id": "1752023212592", "user_id": "user2", "plate_number": "XYZ-456-AB",
     "make": "Honda", "model": "Accord", "year": 2019, "color": "Red",
     "vin": "JHMCF36X8XS123456", "status": VehicleStatus.PENDING,
     "owner": "Jane Smith", "documents": ["doc3.pdf"]},
    {"id": "1752023212593", "user_id": "user3", "plate_number": "DEF-789-CD",
     "make": "Ford", "model": "F-150", "year": 2021, "color": "White",
     "vin": "1FTFW1ET5MFC12345", "status": VehicleStatus.APPROVED,
     "owner": "Bob Johnson"},
]


def lookup_vehicle_by_plate(vehicles: Iterable[Vehicle], plate_number: str) -> Optional[Vehicle]:
    """Find a vehicle by exact (case-sensitive) plate number. Returns None if not found."""
    return next((v for v in vehicles if v.plate_number == plate_number), None)


class VehicleRegistry:
    def __init__(self, store: KeyValueStore, clock=datetime.utcnow):
        self._store = store
        self._clock = clock
        self._lock = asyncio.Lock()
        self._vehicles: list[Vehicle] = []

    @property
    def vehicles(self) -> list[Vehicle]:
        """Snapshot of the current working set."""
        return list(self._vehicles)

    async def _load_vehicles(self) -> list[Vehicle]:
        records = await self._store.get_json(VEHICLES_KEY) or []
        try:
            return [Vehicle.model_validate(r) for r in records]
        except (ValidationError, TypeError) as e:
            raise StorageError("Stored vehicles are corrupt", key=VEHICLES_KEY) from e

    async def _save_vehicles(self, vehicles: list[Vehicle]):
        await self._store.set_json(
            VEHICLES_KEY,
            [v.model_dump(by_alias=True, mode="json", exclude_none=True) for v in vehicles],
        )

    # ── Listing (replaces the working set) ─────────────────────────────────
    async def list_by_owner(self, user_id: str) -> list[Vehicle]:
        try:
            vehicles = await self._load_vehicles()
        except StorageError as e:
            logger.error(f"Failed to fetch vehicles for user {user_id}: {e.message}")
            self._vehicles = []
            return []
        self._vehicles = [v for v in vehicles if v.user_id == user_id]
        return self.vehicles

    async def list_all(self) -> list[Vehicle]:
        try:
            self._vehicles = await self._load_vehicles()
        except StorageError as e:
            logger.error(f"Failed to fetch all vehicles: {e.message}")
            self._vehicles = []
        return self.vehicles

    async def is_plate_registered(self, plate_number: str) -> bool:
        """Check the whole registry (not just the working set) for a plate. Raises StorageError."""
        return lookup_vehicle_by_plate(await self._load_vehicles(), plate_number) is not None

    # ── Mutations ──────────────────────────────────────────────────────────
    def _validate(self, data: VehicleCreate):
        required = {
            "owner account": data.user_id,
            "plate number": data.plate_number,
            "make": data.make,
            "model": data.model,
            "color": data.color,
            "VIN": data.vin,
        }
        missing = [name for name, value in required.items() if not value or not value.strip()]
        if missing:
            raise InvalidInputError(f"Please fill in all required fields ({', '.join(missing)})")

        max_year = self._clock().year + 1
        if not settings.MIN_VEHICLE_YEAR <= data.year <= max_year:
            raise InvalidYearError(
                f"Year must be between {settings.MIN_VEHICLE_YEAR} and {max_year}, got {data.year}"
            )

    async def register(self, data: VehicleCreate) -> OperationResult[Vehicle]:
        try:
            self._validate(data)
            async with self._lock:
                vehicles = await self._load_vehicles()
                if lookup_vehicle_by_plate(vehicles, data.plate_number) is not None:
                    raise DuplicatePlateError()

                fields = data.model_dump()
                fields.update(
                    owner=data.owner or settings.UNKNOWN_OWNER,
                    image_url=data.image_url or settings.PLACEHOLDER_IMAGE_URL,
                )
                vehicle = Vehicle(
                    **fields,
                    id=new_record_id(),
                    status=VehicleStatus.PENDING,
                    registration_date=self._clock(),
                )
                vehicles.append(vehicle)
                await self._save_vehicles(vehicles)
                self._vehicles.append(vehicle)
        except PlateCheckError as e:
            logger.warning(f"Registration rejected for plate {data.plate_number}: {e.message}")
            return OperationResult[Vehicle].fail(e)

        logger.info(f"Registered {vehicle.plate_number} ({vehicle.make} {vehicle.model}) "
                    f"for user {vehicle.user_id}, pending review")
        return OperationResult[Vehicle].ok(vehicle)

    async def set_status(self, vehicle_id: str,
                         status: Union[VehicleStatus, str]) -> OperationResult[Vehicle]:
        try:
            try:
                status = VehicleStatus(status)
            except ValueError:
                raise InvalidTransitionError(f"Unknown vehicle status '{status}'") from None
            if status not in TERMINAL_STATUSES:
                raise InvalidTransitionError("Vehicles can only be approved or rejected")

            async with self._lock:
                vehicles = await self._load_vehicles()
                index = next((i for i, v in enumerate(vehicles) if v.id == vehicle_id), None)
                if index is None:
                    raise VehicleNotFoundError(f"Vehicle {vehicle_id} not found")

                current = vehicles[index]
                if current.status != VehicleStatus.PENDING:
                    raise InvalidTransitionError(
                        f"Vehicle {current.plate_number} is already {current.status.value}"
                    )

                updated = current.model_copy(
                    update={"status": status, "verification_date": self._clock()}
                )
                vehicles[index] = updated
                await self._save_vehicles(vehicles)
                self._vehicles = [updated if v.id == vehicle_id else v for v in self._vehicles]
        except PlateCheckError as e:
            logger.warning(f"Status change to '{status}' rejected for vehicle {vehicle_id}: {e.message}")
            return OperationResult[Vehicle].fail(e)

        logger.info(f"Vehicle {updated.plate_number} {updated.status.value}")
        return OperationResult[Vehicle].ok(updated)

    async def approve(self, vehicle_id: str) -> OperationResult[Vehicle]:
        return await self.set_status(vehicle_id, VehicleStatus.APPROVED)

    async def reject(self, vehicle_id: str) -> OperationResult[Vehicle]:
        return await self.set_status(vehicle_id, VehicleStatus.REJECTED)

    async def bootstrap_demo_vehicles(self) -> OperationResult[bool]:
        """Seed sample vehicles, but only if the `vehicles` key has never been written."""
        try:
            async with self._lock:
                if await self._store.get_item(VEHICLES_KEY) is not None:
                    return OperationResult[bool].ok(False)
                now = self._clock()
                demo = []
                for record in DEMO_VEHICLES:
                    terminal = record["status"] in TERMINAL_STATUSES
                    demo.append(Vehicle(**record, registration_date=now,
                                        verification_date=now if terminal else None))
                await self._save_vehicles(demo)
        except PlateCheckError as e:
            logger.error(f"Demo vehicle bootstrap failed: {e.message}")
            return OperationResult[bool].fail(e)
        logger.info(f"Seeded {len(DEMO_VEHICLES)} demo vehicles")
        return OperationResult[bool].ok(True)

    # ── Working-set queries ────────────────────────────────────────────────
    def find_by_id(self, vehicle_id: str) -> Optional[Vehicle]:
        return next((v for v in self._vehicles if v.id == vehicle_id), None)

    def find_pending(self) -> list[Vehicle]:
        return [v for v in self._vehicles if v.status == VehicleStatus.PENDING]

    def search_by_plate(self, fragment: str) -> list[Vehicle]:
        """Case-insensitive substring match on plate number."""
        needle = fragment.lower()
        return [v for v in self._vehicles if needle in v.plate_number.lower()]

    def statistics(self) -> VehicleStats:
        return compute_statistics(self._vehicles)
