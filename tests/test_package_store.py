"""
Package Store and Domain Model Tests

Run: pytest tests/test_package_store.py -v
"""

import pytest

from core.models import Package, PackageSize, Stop
from services.packages import PackageStore
from utils.address import format_address_for_display
from utils.exceptions import PackageStoreError


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


# ============================================================================
# Model Tests
# ============================================================================

class TestStop:
    """Tests for the Stop model."""

    def test_full_address_is_derived(self):
        stop = Stop(id="s1", address_line1="333 Fleming Road", city="Sarver", state="PA", zip="16055")
        assert stop.full_address == "333 Fleming Road, Sarver, PA, 16055"

        stop.address_line1 = "335 Fleming Road"
        assert stop.full_address == "335 Fleming Road, Sarver, PA, 16055"

    def test_full_address_skips_blank_parts(self):
        stop = Stop(id="s1", address_line1="12 Oak St", address_line2="  ", city="Cabot")
        assert stop.full_address == "12 Oak St, Cabot"

    def test_id_is_immutable(self):
        stop = Stop(id="s1", address_line1="12 Oak St")
        with pytest.raises(AttributeError):
            stop.id = "s2"

    def test_geocoded(self):
        assert Stop(id="s1", address_line1="x").is_geocoded is False
        assert Stop(id="s1", address_line1="x", lat=40.7, lng=-79.8).is_geocoded is True

    def test_dict_round_trip(self):
        stop = Stop(id="s1", address_line1="12 Oak St", city="Cabot", notes="blue barn")
        restored = Stop.from_dict(stop.to_dict())

        assert restored == stop


class TestPackage:
    """Tests for the Package model."""

    def test_defaults(self):
        package = Package()

        assert package.size == PackageSize.MEDIUM
        assert package.delivered is False
        assert len(package.id) == 32

    def test_size_coerced_from_string(self):
        assert Package(size="large").size == PackageSize.LARGE

    def test_ids_are_unique(self):
        assert Package().id != Package().id

    def test_from_dict(self):
        package = Package.from_dict({"size": "small", "assigned_stop_id": "s1"})

        assert package.size == PackageSize.SMALL
        assert package.assigned_stop_id == "s1"
        assert package.id


# ============================================================================
# Package Store Tests
# ============================================================================

class TestPackageStore:
    """Tests for PackageStore."""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def store(self, clock):
        return PackageStore(undo_window_seconds=10.0, clock=clock)

    def test_add_and_remove_last(self, store):
        first = store.add(Package(assigned_stop_id="s1"))
        second = store.add(Package(assigned_stop_id="s2"))

        assert store.remove_last() is second
        assert store.packages == [first]
        assert store.load_count == 1

    def test_remove_last_empty(self, store):
        assert store.remove_last() is None

    def test_packages_is_a_copy(self, store):
        store.add(Package())
        store.packages.clear()
        assert len(store) == 1

    def test_delete_and_restore(self, store, clock):
        a = store.add(Package(assigned_stop_id="s1"))
        b = store.add(Package(assigned_stop_id="s2"))

        store.delete(a.id)
        assert store.packages == [b]

        clock.now = 5.0
        assert store.restore_last_deleted() is a
        assert store.packages == [a, b]

    def test_restore_after_window(self, store, clock):
        a = store.add(Package())
        store.delete(a.id)

        clock.now = 11.0

        with pytest.raises(PackageStoreError):
            store.restore_last_deleted()

    def test_delete_missing(self, store):
        with pytest.raises(PackageStoreError) as exc:
            store.delete("nope")
        assert exc.value.details["package_id"] == "nope"

    def test_update(self, store):
        package = store.add(Package(notes=None))
        package.notes = "Fragile"

        store.update(package)

        assert store.get(package.id).notes == "Fragile"
        with pytest.raises(PackageStoreError):
            store.update(Package())

    def test_mark_delivered(self, store):
        store.add(Package(assigned_stop_id="s1"))
        store.add(Package(assigned_stop_id="s1"))
        store.add(Package(assigned_stop_id="s2"))

        assert store.mark_delivered("s1") == 2
        assert store.mark_delivered("s1") == 0
        assert [p.delivered for p in store.packages_for_stop("s2")] == [False]

    def test_clear(self, store):
        store.add(Package())
        store.clear()

        assert len(store) == 0
        assert store.last is None


class TestResolveStopNumber:
    """The stop id is authoritative over the cached number."""

    @pytest.fixture
    def stops(self):
        return [Stop(id="s1", address_line1="333 Fleming Road"), Stop(id="s2", address_line1="12 Oak St")]

    def test_by_id(self, stops):
        package = Package(assigned_stop_id="s2", assigned_stop_number=7)
        assert PackageStore.resolve_stop_number(package, stops) == 2

    def test_follows_reorder(self, stops):
        package = Package(assigned_stop_id="s2", assigned_stop_number=2)
        assert PackageStore.resolve_stop_number(package, list(reversed(stops))) == 1

    def test_dangling_id_is_unassigned(self, stops):
        package = Package(assigned_stop_id="gone", assigned_stop_number=1)
        assert PackageStore.resolve_stop_number(package, stops) is None

    def test_cached_number_without_id(self, stops):
        package = Package(assigned_stop_number=3)
        assert PackageStore.resolve_stop_number(package, stops) == 3


# ============================================================================
# Address Display Tests
# ============================================================================

class TestAddressDisplay:

    def test_number_street_secondary(self):
        display = format_address_for_display("333 Fleming Road, Sarver, PA")

        assert display.number == "333"
        assert display.street == "Fleming Road"
        assert display.secondary == "Sarver"

    def test_no_house_number(self):
        display = format_address_for_display("Fleming Road")

        assert display.number == ""
        assert display.street == "Fleming Road"

    def test_empty(self):
        assert format_address_for_display("").street == "Unknown"
