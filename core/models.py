"""
Domain Models

Route stops and packages. Pure data with serialization helpers; route and
package ownership lives with the host application and the package store.
"""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class PackageSize(str, Enum):
    """Parcel size classes."""
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


_ADDRESS_FIELDS = ("address_line1", "address_line2", "city", "state", "zip")


@dataclass
class Stop:
    """
    A delivery location on the route.

    ``full_address`` is derived from the address fields on every access, so it
    can never go stale after an edit. ``id`` cannot be reassigned once set.
    """
    id: str
    address_line1: str
    address_line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    lat: float = 0.0
    lng: float = 0.0
    notes: Optional[str] = None

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "id" and "id" in self.__dict__:
            raise AttributeError("Stop.id is immutable")
        super().__setattr__(name, value)

    @property
    def full_address(self) -> str:
        parts = [getattr(self, name) for name in _ADDRESS_FIELDS]
        return ", ".join(p.strip() for p in parts if p and p.strip())

    @property
    def is_geocoded(self) -> bool:
        return not (self.lat == 0 and self.lng == 0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "address_line1": self.address_line1,
            "address_line2": self.address_line2,
            "city": self.city,
            "state": self.state,
            "zip": self.zip,
            "lat": self.lat,
            "lng": self.lng,
            "notes": self.notes,
            "full_address": self.full_address,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Stop":
        return cls(
            id=data["id"],
            address_line1=data.get("address_line1", ""),
            address_line2=data.get("address_line2"),
            city=data.get("city"),
            state=data.get("state"),
            zip=data.get("zip"),
            lat=float(data.get("lat") or 0.0),
            lng=float(data.get("lng") or 0.0),
            notes=data.get("notes"),
        )


def new_package_id() -> str:
    return uuid.uuid4().hex


@dataclass
class Package:
    """
    A parcel awaiting delivery.

    ``assigned_stop_id`` is a weak reference and is authoritative.
    ``assigned_stop_number`` is a display cache used only when no id is set.
    """
    id: str = field(default_factory=new_package_id)
    tracking: Optional[str] = None
    size: PackageSize = PackageSize.MEDIUM
    notes: Optional[str] = None
    assigned_stop_id: Optional[str] = None
    assigned_stop_number: Optional[int] = None
    assigned_address: Optional[str] = None
    delivered: bool = False

    def __post_init__(self):
        self.size = PackageSize(self.size)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "tracking": self.tracking,
            "size": self.size.value,
            "notes": self.notes,
            "assigned_stop_id": self.assigned_stop_id,
            "assigned_stop_number": self.assigned_stop_number,
            "assigned_address": self.assigned_address,
            "delivered": self.delivered,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Package":
        return cls(
            id=data.get("id") or new_package_id(),
            tracking=data.get("tracking"),
            size=PackageSize(data.get("size", PackageSize.MEDIUM.value)),
            notes=data.get("notes"),
            assigned_stop_id=data.get("assigned_stop_id"),
            assigned_stop_number=data.get("assigned_stop_number"),
            assigned_address=data.get("assigned_address"),
            delivered=bool(data.get("delivered", False)),
        )
