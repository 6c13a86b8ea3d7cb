# platecheck/schemas/vehicle.py
from enum import Enum
from datetime import datetime
from typing import Optional

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class VehicleStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class VehicleCreate(BaseModel):
    """Registration input: every vehicle field except id, status and dates."""

    user_id: str
    plate_number: str
    make: str
    model: str
    year: int
    color: str
    vin: str
    image_url: Optional[str] = None
    owner: Optional[str] = None
    documents: Optional[list[str]] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class Vehicle(VehicleCreate):
    id: str
    status: VehicleStatus = VehicleStatus.PENDING
    registration_date: datetime
    verification_date: Optional[datetime] = None   # absent while pending


class VehicleStats(BaseModel):
    total: int = 0
    pending: int = 0
    approved: int = 0
    rejected: int = 0
    by_make: dict[str, int] = {}
    by_year: dict[str, int] = {}

    class Config:
        alias_generator = to_camel
        populate_by_name = True
