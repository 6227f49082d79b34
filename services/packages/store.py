"""
Package Store

In-memory package manifest for the current day's load.

The voice session only appends packages and removes the most recent one
(undo). Manual screens use the remaining operations. Deletes are soft for a
bounded window so they can be restored.

Usage:
    store = PackageStore()
    store.add(Package(size=PackageSize.LARGE, assigned_stop_id="s1"))
    store.remove_last()
"""

import time
from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Sequence

from config.settings import settings
from core.models import Package, Stop
from utils.exceptions import PackageStoreError
from utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class _DeletedPackage:
    package: Package
    position: int
    deleted_at: float


class PackageStore:
    """Ordered package list with append, undo and soft delete."""

    def __init__(
        self,
        packages: Optional[Sequence[Package]] = None,
        undo_window_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        self._packages: List[Package] = list(packages or [])
        self._deleted: List[_DeletedPackage] = []
        self.undo_window_seconds = (
            settings.PACKAGE_UNDO_WINDOW_SECONDS if undo_window_seconds is None
            else undo_window_seconds
        )
        self._clock = clock
        self.load_count = 0

    # =========================================================================
    # Read
    # =========================================================================

    @property
    def packages(self) -> List[Package]:
        """Copy of the package list, oldest first."""
        return list(self._packages)

    def __len__(self) -> int:
        return len(self._packages)

    def get(self, package_id: str) -> Optional[Package]:
        for pkg in self._packages:
            if pkg.id == package_id:
                return pkg
        return None

    @property
    def last(self) -> Optional[Package]:
        return self._packages[-1] if self._packages else None

    def packages_for_stop(self, stop_id: str) -> List[Package]:
        return [p for p in self._packages if p.assigned_stop_id == stop_id]

    @staticmethod
    def resolve_stop_number(package: Package, stops: Sequence[Stop]) -> Optional[int]:
        """
        Display stop number for a package, computed against the live route.

        The stop id is authoritative; a dangling id means unassigned. The
        cached number is only used for packages that never had an id.
        """
        if package.assigned_stop_id:
            for i, stop in enumerate(stops):
                if stop.id == package.assigned_stop_id:
                    return i + 1
            return None
        return package.assigned_stop_number

    # =========================================================================
    # Write
    # =========================================================================

    def add(self, package: Package) -> Package:
        self._packages.append(package)
        self.load_count += 1
        logger.debug(f"Added package {package.id} → stop {package.assigned_stop_id}")
        return package

    def remove_last(self) -> Optional[Package]:
        """Remove and return the most recently added package (voice undo)."""
        if not self._packages:
            return None
        package = self._packages.pop()
        self.load_count = max(0, self.load_count - 1)
        logger.info(f"Removed last package {package.id}")
        return package

    def delete(self, package_id: str) -> Package:
        """Soft-delete a package; restorable within the undo window."""
        for i, pkg in enumerate(self._packages):
            if pkg.id == package_id:
                del self._packages[i]
                self._deleted.append(_DeletedPackage(pkg, i, self._clock()))
                return pkg
        raise PackageStoreError("Package not found", package_id=package_id)

    def restore_last_deleted(self) -> Package:
        """Restore the most recent soft delete if still inside the undo window."""
        self._purge_expired()
        if not self._deleted:
            raise PackageStoreError("Nothing to restore")
        entry = self._deleted.pop()
        position = min(entry.position, len(self._packages))
        self._packages.insert(position, entry.package)
        return entry.package

    def update(self, package: Package) -> Package:
        for i, pkg in enumerate(self._packages):
            if pkg.id == package.id:
                self._packages[i] = package
                return package
        raise PackageStoreError("Package not found", package_id=package.id)

    def mark_delivered(self, stop_id: str) -> int:
        """Mark every package for a stop as delivered. Returns how many changed."""
        changed = 0
        for i, pkg in enumerate(self._packages):
            if pkg.assigned_stop_id == stop_id and not pkg.delivered:
                self._packages[i] = replace(pkg, delivered=True)
                changed += 1
        if changed:
            logger.info(f"Marked {changed} packages delivered at stop {stop_id}")
        return changed

    def clear(self) -> None:
        self._packages = []
        self._deleted = []
        self.load_count = 0

    def _purge_expired(self) -> None:
        cutoff = self._clock() - self.undo_window_seconds
        self._deleted = [d for d in self._deleted if d.deleted_at >= cutoff]
