"""
Object type classification into destination collections.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class Category(str, Enum):
    BUS = "Bus"
    VEHICLE = "Vehicle"
    OTHER = "Other"

    @property
    def collection(self) -> str:
        return _COLLECTIONS[self]


_COLLECTIONS = {
    Category.BUS: "buses",
    Category.VEHICLE: "vehicles",
    Category.OTHER: "others",
}

# "cup" is a label the on-device detector emits for some vehicles.
VEHICLE_TYPES = frozenset({"car", "truck", "motorcycle", "cup"})


def classify(object_type: Optional[str]) -> Category:
    label = (object_type or "").lower()
    if label == "bus":
        return Category.BUS
    if label in VEHICLE_TYPES:
        return Category.VEHICLE
    return Category.OTHER


def category_for_collection(collection: str) -> Optional[Category]:
    for category, name in _COLLECTIONS.items():
        if name == collection:
            return category
    return None
