"""Aggregate counts over a set of vehicles (admin dashboard figures)."""

from collections import Counter
from typing import Iterable

from platecheck.schemas.vehicle import Vehicle, VehicleStats, VehicleStatus


def compute_statistics(vehicles: Iterable[Vehicle]) -> VehicleStats:
    vehicles = list(vehicles)
    by_status = Counter(v.status for v in vehicles)
    return VehicleStats(
        total=len(vehicles),
        pending=by_status[VehicleStatus.PENDING],
        approved=by_status[VehicleStatus.APPROVED],
        rejected=by_status[VehicleStatus.REJECTED],
        by_make=dict(Counter(v.make for v in vehicles)),
        by_year=dict(Counter(str(v.year) for v in vehicles)),
    )
