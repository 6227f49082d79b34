"""
Core Module

Provides the route and package domain models.
"""

from .models import Stop, Package, PackageSize, new_package_id

__all__ = [
    "Stop",
    "Package",
    "PackageSize",
    "new_package_id",
]
