"""Testi čistih funkcij storitev / Pure service function tests."""

import re
from datetime import datetime, timedelta, timezone

import pytest

from mat_tracker.models.cycle import Cycle, CycleStatus
from mat_tracker.models.driver_pickup import PickupStatus
from mat_tracker.models.reminder import Reminder
from mat_tracker.models.user import UserRole
from mat_tracker.services.analytics import conversion_rate
from mat_tracker.services.code_registry import CODE_ALPHABET, generate_unique_codes
from mat_tracker.services.cycle_lifecycle import (
    TRANSITIONS,
    can_transition,
    days_remaining,
    is_expiring,
    neglect_level,
)
from mat_tracker.services.dashboard_actions import PickupSnapshot, SellerCycle, build_dashboard_actions
from mat_tracker.services.errors import CodeGenerationShortfallError, ValidationError
from mat_tracker.services.followups import is_due
from mat_tracker.services.map_locations import marker_status
from mat_tracker.utils.auth import ROLE_PERMISSIONS, has_permission
from mat_tracker.utils.geo import GeoPoint, find_nearest_point, group_by_proximity, haversine
from mat_tracker.schemas.cycle import LocationFix, StartDateUpdate
from mat_tracker.schemas.reminder import PostponeRequest, ReminderCreate
from mat_tracker.utils.timeutils import next_local_morning, shift_months, to_naive_utc

NOW = datetime(2026, 3, 10, 12, 0)
CODE_RE = re.compile(r"^[A-Z0-9]+-[23456789ABCDEFGHJKMNPQRSTUVWXYZ]{4}$")


# --- Kode / Codes ---

def test_codes_format_and_uniqueness():
    existing = {"GEO-2345"}
    all_codes: set[str] = set()
    for _ in range(5):
        codes = generate_unique_codes("GEO", 20, existing | all_codes)
        assert len(codes) == len(set(codes)) == 20
        assert not set(codes) & existing
        assert not set(codes) & all_codes
        all_codes.update(codes)

    for code in all_codes:
        assert CODE_RE.match(code)
        assert not set(code.split("-")[1]) & set("0O1IL")


def test_code_alphabet_excludes_ambiguous():
    assert not set(CODE_ALPHABET) & set("0O1IL")
    assert len(CODE_ALPHABET) == 31


def test_code_shortfall_carries_partial_list():
    with pytest.raises(CodeGenerationShortfallError) as exc_info:
        generate_unique_codes("GEO", 2, set(), choice=lambda alphabet: "2")
    assert exc_info.value.partial == ["GEO-2222"]
    assert exc_info.value.requested == 2
    assert exc_info.value.to_dict()["generated"] == 1


def test_code_bad_prefix():
    with pytest.raises(ValidationError):
        generate_unique_codes("geo", 1, set())
    with pytest.raises(ValidationError):
        generate_unique_codes("GEO", 0, set())


# --- Potek testa / Trial expiry ---

def test_expiry_boundary():
    assert is_expiring(NOW - timedelta(days=7), NOW)
    assert not is_expiring(NOW - timedelta(days=6), NOW)
    assert is_expiring(NOW - timedelta(days=6, seconds=1), NOW)
    assert not is_expiring(None, NOW)


def test_expiry_thirty_days_is_critical():
    start = NOW - timedelta(days=30)
    assert is_expiring(start, NOW)
    assert neglect_level(start, NOW) == "critical"
    assert neglect_level(NOW - timedelta(days=20), NOW) == "warning"
    assert neglect_level(NOW - timedelta(days=19), NOW) is None


def test_extension_moves_reference():
    start = NOW - timedelta(days=7)
    assert is_expiring(start, NOW, extended_count=0)
    assert not is_expiring(start, NOW, extended_count=1)


def test_days_remaining_rounds_up():
    assert days_remaining(NOW - timedelta(days=4, hours=12), NOW) == 3
    assert days_remaining(NOW - timedelta(days=7), NOW) == 0
    assert days_remaining(NOW - timedelta(days=9), NOW) == -2


# --- Prehodi / Transitions ---

def test_transition_matrix():
    allowed = {
        (CycleStatus.CLEAN, CycleStatus.ON_TEST),
        (CycleStatus.ON_TEST, CycleStatus.DIRTY),
        (CycleStatus.ON_TEST, CycleStatus.WAITING_DRIVER),
        (CycleStatus.DIRTY, CycleStatus.WAITING_DRIVER),
        (CycleStatus.DIRTY, CycleStatus.COMPLETED),
        (CycleStatus.WAITING_DRIVER, CycleStatus.COMPLETED),
    }
    for current in CycleStatus:
        for target in CycleStatus:
            assert can_transition(current, target) == ((current, target) in allowed)
    assert TRANSITIONS[CycleStatus.COMPLETED] == frozenset()


# --- Analitika / Analytics ---

def test_conversion_rate():
    assert conversion_rate(0, 0) == 0
    assert conversion_rate(5, 0) == 0
    assert conversion_rate(1, 3) == 33
    assert conversion_rate(2, 3) == 67
    assert conversion_rate(1, 8) == 13
    assert conversion_rate(4, 4) == 100


# --- Geo ---

def test_group_by_proximity():
    a = GeoPoint("A", 0.0, 0.0)
    b = GeoPoint("B", 0.00005, 0.0)
    c = GeoPoint("C", 5.0, 5.0)
    groups = group_by_proximity([a, b, c], threshold=0.0001)

    assert len(groups) == 2
    assert [p.key for p in groups[0].points] == ["A", "B"]
    assert groups[0].lat == pytest.approx(0.000025)
    assert groups[0].lng == pytest.approx(0.0)
    assert [p.key for p in groups[1].points] == ["C"]
    assert (groups[1].lat, groups[1].lng) == (5.0, 5.0)


def test_haversine_ljubljana_maribor():
    assert 95 < haversine(46.0569, 14.5058, 46.5547, 15.6459) < 110


def test_find_nearest_point():
    points = [GeoPoint("maribor", 46.5547, 15.6459), GeoPoint("kranj", 46.2389, 14.3556)]
    result = find_nearest_point(46.0569, 14.5058, points)
    assert result.point.key == "kranj"
    assert result.is_within_range
    assert result.distance_km == round(result.distance_km, 1)

    far = find_nearest_point(46.0569, 14.5058, points[:1])
    assert not far.is_within_range

    empty = find_nearest_point(0, 0, [])
    assert empty.point is None and not empty.is_within_range


def test_marker_status_priority():
    assert marker_status(Cycle(status=CycleStatus.WAITING_DRIVER, contract_signed=True)) == "contract_signed"
    assert marker_status(Cycle(status=CycleStatus.WAITING_DRIVER, contract_signed=False)) == "waiting_driver"
    assert marker_status(Cycle(status=CycleStatus.DIRTY, contract_signed=False)) == "completed"
    assert marker_status(Cycle(status=CycleStatus.ON_TEST, contract_signed=False)) == "on_test"


# --- Čas / Time ---

def test_next_local_morning_winter_and_summer():
    # Ljubljana: UTC+1 pozimi, UTC+2 poleti
    assert next_local_morning(datetime(2026, 1, 15, 12, 0)) == datetime(2026, 1, 16, 8, 0)
    assert next_local_morning(datetime(2026, 7, 15, 12, 0)) == datetime(2026, 7, 16, 7, 0)
    # 23:30 UTC je že naslednji dan v Ljubljani
    assert next_local_morning(datetime(2026, 1, 15, 23, 30)) == datetime(2026, 1, 17, 8, 0)
    assert next_local_morning(datetime(2026, 1, 15, 12, 0), days=2) == datetime(2026, 1, 17, 8, 0)


def test_to_naive_utc():
    assert to_naive_utc(None) is None
    assert to_naive_utc(datetime(2026, 1, 5, 8, 0)) == datetime(2026, 1, 5, 8, 0)
    aware = datetime(2026, 1, 5, 8, 0, tzinfo=timezone(timedelta(hours=2)))
    assert to_naive_utc(aware) == datetime(2026, 1, 5, 6, 0)
    assert to_naive_utc(aware).tzinfo is None


def test_request_datetimes_become_naive_utc():
    assert StartDateUpdate(test_start_date="2026-01-05T08:00:00Z").test_start_date == datetime(2026, 1, 5, 8, 0)
    assert ReminderCreate(reminder_at="2026-01-05T08:00:00+02:00").reminder_at == datetime(2026, 1, 5, 6, 0)
    assert PostponeRequest(until="2026-07-01T09:00:00+02:00").until == datetime(2026, 7, 1, 7, 0)
    assert PostponeRequest().until is None
    fix = LocationFix(lat=46.05, lng=14.5, captured_at="2026-01-05T08:00:00.123Z")
    assert fix.captured_at.tzinfo is None
    assert fix.captured_at == datetime(2026, 1, 5, 8, 0, 0, 123000)


def test_shift_months():
    assert shift_months(datetime(2026, 1, 15), -1) == datetime(2025, 12, 1)
    assert shift_months(datetime(2026, 3, 31), -11) == datetime(2025, 4, 1)
    assert shift_months(datetime(2025, 12, 5), 1) == datetime(2026, 1, 1)


# --- Opomniki / Reminders ---

def test_due_set():
    reminders = [
        Reminder(reminder_at=NOW - timedelta(hours=1), is_completed=False, note="due"),
        Reminder(reminder_at=NOW + timedelta(hours=1), is_completed=False, note="future"),
        Reminder(reminder_at=NOW - timedelta(hours=1), is_completed=True, note="done"),
    ]
    assert [r.note for r in reminders if is_due(r, NOW)] == ["due"]


# --- Nadzorna plošča / Dashboard ---

def test_dashboard_builder():
    cycles = [
        SellerCycle("s1", "Jure Novak", "GEO", CycleStatus.ON_TEST, NOW - timedelta(days=31)),
        SellerCycle("s1", "Jure Novak", "GEO", CycleStatus.ON_TEST, NOW - timedelta(days=25)),
        SellerCycle("s1", "Jure Novak", "GEO", CycleStatus.ON_TEST, NOW - timedelta(days=2)),
        *[SellerCycle("s2", "Maja Zupan", "STAN", CycleStatus.DIRTY) for _ in range(12)],
        SellerCycle("s2", "Maja Zupan", "STAN", CycleStatus.WAITING_DRIVER),
    ]
    pickups = [
        PickupSnapshot("p-old", PickupStatus.PENDING, NOW - timedelta(days=5), None, 4),
        PickupSnapshot("p-new", PickupStatus.PENDING, NOW - timedelta(days=1), "Marko", 2),
        PickupSnapshot("p-run", PickupStatus.IN_PROGRESS, NOW - timedelta(days=1), "Marko", 3),
    ]
    actions = build_dashboard_actions(cycles, pickups, NOW)

    assert [a.id for a in actions.urgent] == ["critical-test-s1", "old-pickup-p-old"]
    assert actions.urgent[0].days == 31
    assert actions.today[0].id == "dirty-seller-s2"
    assert actions.today[0].title == "12x umazanih"
    assert {a.id for a in actions.today} == {
        "dirty-seller-s2", "waiting-driver-s2", "warning-test-s1", "active-pickup-p-run",
    }
    assert actions.total_urgent == 2
    assert actions.total_today == 4


def test_dashboard_dirty_below_threshold():
    cycles = [SellerCycle("s2", "Maja Zupan", None, CycleStatus.DIRTY) for _ in range(9)]
    actions = build_dashboard_actions(cycles, [], NOW)
    assert actions.urgent == [] and actions.today == []


# --- Pravice / Permissions ---

def test_every_role_has_permissions():
    assert set(ROLE_PERMISSIONS) == set(UserRole)


def test_permission_matrix():
    assert has_permission(UserRole.PRODAJALEC, "cycles", "update")
    assert not has_permission(UserRole.PRODAJALEC, "pickups", "create")
    assert not has_permission(UserRole.PRODAJALEC, "qr-codes", "create")
    assert has_permission(UserRole.INVENTAR, "pickups", "create")
    assert not has_permission(UserRole.INVENTAR, "accounts", "create")
    assert has_permission(UserRole.ADMIN, "accounts", "delete")
