"""Testi analitike, nadzorne plošče in zemljevida / Analytics, dashboard and map tests."""

from datetime import timedelta

import pytest

from mat_tracker.models.cycle import ContractFrequency, CycleStatus
from mat_tracker.models.user import UserRole
from mat_tracker.services.analytics import AnalyticsService
from mat_tracker.services.cycle_lifecycle import CycleService
from mat_tracker.services.dashboard_actions import load_dashboard_actions
from mat_tracker.services.geolocation import GeoFix, fixed_provider
from mat_tracker.services.map_locations import MapService
from mat_tracker.services.pickup_batcher import PickupBatchService
from mat_tracker.utils.timeutils import utcnow


@pytest.fixture
def make_cycle(db, mat_type, make_code):
    async def _make(owner, code, status=CycleStatus.ON_TEST, days=0.0, location=None, contract=False):
        qr = await make_code(code, owner=owner)
        service = CycleService(db)
        cycle = await service.create_cycle(qr.id, mat_type.id, owner)
        if status == CycleStatus.CLEAN:
            return cycle
        await service.put_on_test(
            cycle.id,
            owner,
            new_company={"name": f"Stranka {code}"},
            test_start_date=utcnow() - timedelta(days=days),
            location_provider=fixed_provider(GeoFix(*location)) if location else None,
        )
        if contract:
            await service.mark_contract_signed(cycle.id, owner, ContractFrequency.TWO_WEEKS)
        if status in (CycleStatus.DIRTY, CycleStatus.WAITING_DRIVER):
            await service.mark_dirty(cycle.id, owner)
        if status == CycleStatus.WAITING_DRIVER:
            await service.request_pickup(cycle.id, owner)
        return cycle

    return _make


@pytest.fixture
async def fleet(seller, make_user, make_cycle):
    other = await make_user(UserRole.PRODAJALEC, prefix="STAN", first_name="Maja", last_name="Zupan")
    cycles = {
        "signed": await make_cycle(seller, "GEO-2222", days=6.5, contract=True, location=(46.0569, 14.5058)),
        "fresh": await make_cycle(seller, "GEO-3333", days=1, location=(46.05692, 14.50581)),
        "clean": await make_cycle(seller, "GEO-4444", CycleStatus.CLEAN),
        "dirty": await make_cycle(seller, "GEO-5555", CycleStatus.DIRTY, days=9, location=(46.2389, 14.3556)),
        "overdue": await make_cycle(other, "STAN-2222", days=10, location=(46.5547, 15.6459)),
    }
    return other, cycles


@pytest.mark.asyncio
async def test_kpis(db, fleet):
    kpis = await AnalyticsService(db).kpis(utcnow())

    assert kpis == {
        "active_cycles": 5,
        "on_test": 3,
        "conversion_rate": 20,
        "total_contracts": 1,
    }


@pytest.mark.asyncio
async def test_kpis_empty(db):
    kpis = await AnalyticsService(db).kpis()
    assert kpis["conversion_rate"] == 0
    assert kpis["active_cycles"] == 0


@pytest.mark.asyncio
async def test_status_distribution_omits_zeros(db, fleet):
    distribution = await AnalyticsService(db).status_distribution()

    assert distribution == [
        {"status": "on_test", "label": "Na testu", "value": 3},
        {"status": "clean", "label": "Čisti", "value": 1},
        {"status": "dirty", "label": "Umazani", "value": 1},
    ]


@pytest.mark.asyncio
async def test_monthly_trend(db, seller, fleet):
    other, _ = fleet
    now = utcnow()
    service = AnalyticsService(db)

    trend = await service.monthly_trend(now=now)
    assert len(trend) == 12
    assert trend[-1]["month"] == now.strftime("%Y-%m")
    assert [p["month"] for p in trend] == sorted(p["month"] for p in trend)
    assert sum(p["new_tests"] for p in trend) == 4
    assert sum(p["contracts"] for p in trend) == 1
    assert sum(p["completed"] for p in trend) == 0

    mine = await service.monthly_trend(salesperson_id=other.id, now=now, months=3)
    assert len(mine) == 3
    assert sum(p["new_tests"] for p in mine) == 1
    assert sum(p["contracts"] for p in mine) == 0


@pytest.mark.asyncio
async def test_top_sellers(db, seller, inventory, fleet):
    other, _ = fleet
    sellers = await AnalyticsService(db).top_sellers()

    assert [s["id"] for s in sellers] == [seller.id, other.id]
    assert sellers[0]["name"] == "Jure Novak"
    assert sellers[0]["total_cycles"] == 4
    assert sellers[0]["contracts"] == 1
    assert sellers[0]["on_test"] == 2
    assert sellers[1]["on_test"] == 1


@pytest.mark.asyncio
async def test_expiring_tests(db, fleet):
    _, cycles = fleet
    expiring = await AnalyticsService(db).expiring_tests(utcnow())

    assert [e["cycle_id"] for e in expiring] == [cycles["overdue"].id, cycles["signed"].id]
    assert [e["days_remaining"] for e in expiring] == [-3, 1]
    assert expiring[0]["qr_code"] == "STAN-2222"
    assert expiring[0]["company_name"] == "Stranka STAN-2222"
    assert expiring[0]["salesperson_name"] == "Maja Zupan"


@pytest.mark.asyncio
async def test_dashboard_actions_from_database(db, seller, inventory, make_cycle):
    await make_cycle(seller, "GEO-2222", days=31)
    dirty = await make_cycle(seller, "GEO-3333", CycleStatus.DIRTY, days=5)
    pickup = await PickupBatchService(db).create_batch([dirty.id], inventory, assigned_driver="Marko")
    pickup.created_at = utcnow() - timedelta(days=4)

    actions = await load_dashboard_actions(db)

    assert [a.id for a in actions.urgent] == [f"critical-test-{seller.id}", f"old-pickup-{pickup.id}"]
    assert actions.urgent[1].description == "1 predpražnikov - Marko"
    assert [a.id for a in actions.today] == [f"waiting-driver-{seller.id}"]


# --- Zemljevid / Map ---

@pytest.mark.asyncio
async def test_map_locations_and_markers(db, seller, admin, fleet):
    other, cycles = fleet
    service = MapService(db)

    everything = {loc.cycle_id: loc for loc in await service.locations(admin)}
    assert set(everything) == {cycles["signed"].id, cycles["fresh"].id, cycles["overdue"].id}
    assert everything[cycles["signed"].id].marker_status == "contract_signed"
    assert everything[cycles["fresh"].id].marker_status == "on_test"
    assert everything[cycles["overdue"].id].salesperson_name == "Maja Zupan"

    own = await service.locations(seller, salesperson_id=other.id)
    assert {loc.salesperson_id for loc in own} == {seller.id}

    with_dirty = await service.locations(admin, include_dirty=True)
    dirty = next(loc for loc in with_dirty if loc.cycle_id == cycles["dirty"].id)
    assert dirty.marker_status == "completed"


@pytest.mark.asyncio
async def test_map_groups_and_nearest(db, admin, fleet):
    _, cycles = fleet
    service = MapService(db)
    locations = await service.locations(admin)

    groups = service.group(locations)
    sizes = sorted(len(g.points) for g in groups)
    assert sizes == [1, 2]

    nearest = service.nearest(46.06, 14.51, locations)
    assert nearest.point.key in {cycles["signed"].id, cycles["fresh"].id}
    assert nearest.is_within_range

    far = service.nearest(45.0, 10.0, locations)
    assert not far.is_within_range
