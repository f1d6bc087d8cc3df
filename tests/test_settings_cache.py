# tests/test_settings_cache.py
import pytest
from pydantic import ValidationError

from app.db.models import SystemSettings
from app.db.schemas import SystemSettingsUpdate
from app.services.v1 import SettingsCache, SettingsService

pytestmark = pytest.mark.anyio


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


async def _set_maintenance(session, enabled: bool) -> None:
    row = await session.get(SystemSettings, 1)
    if row is None:
        row = SystemSettings(settings_id=1)
        session.add(row)
    row.maintenance_mode = enabled
    await session.commit()


async def test_missing_row_means_defaults(session):
    snapshot = await SettingsService(session).get_settings()
    assert snapshot.maintenance_mode is False
    assert snapshot.maintenance_message.startswith("System is under maintenance")


async def test_cache_serves_stale_value_until_ttl_expires(session):
    clock = FakeClock()
    cache = SettingsCache(ttl_seconds=60, clock=clock)

    assert (await cache.get(session)).maintenance_mode is False

    await _set_maintenance(session, True)
    clock.now += 30
    assert (await cache.get(session)).maintenance_mode is False

    clock.now += 31
    assert (await cache.get(session)).maintenance_mode is True


async def test_invalidate_forces_reload(session):
    cache = SettingsCache(ttl_seconds=3600)
    assert (await cache.get(session)).maintenance_mode is False

    await _set_maintenance(session, True)
    cache.invalidate()
    assert (await cache.get(session)).maintenance_mode is True


async def test_update_settings_invalidates_cache(session):
    cache = SettingsCache(ttl_seconds=3600)
    await cache.get(session)

    updated = await SettingsService(session).update_settings(
        SystemSettingsUpdate(maintenance_mode=True, estimated_downtime="2 hours"),
        cache=cache,
    )

    assert updated.maintenance_mode is True
    assert updated.estimated_downtime == "2 hours"
    assert cache.is_fresh() is False
    assert (await cache.get(session)).maintenance_mode is True


def test_update_schema_rejects_null_for_required_fields():
    with pytest.raises(ValidationError):
        SystemSettingsUpdate.model_validate({"maintenanceMessage": None})
    with pytest.raises(ValidationError):
        SystemSettingsUpdate.model_validate({"maintenanceMode": None})

    cleared = SystemSettingsUpdate.model_validate({"estimatedDowntime": None})
    assert cleared.model_dump(exclude_unset=True) == {"estimated_downtime": None}


async def test_update_settings_keeps_required_fields_when_none(session):
    service = SettingsService(session)
    await service.update_settings(
        SystemSettingsUpdate(maintenance_mode=True, maintenance_message="Back at noon")
    )

    updated = await service.update_settings(
        SystemSettingsUpdate.model_construct(
            maintenance_message=None, _fields_set={"maintenance_message"}
        )
    )

    assert updated.maintenance_mode is True
    assert updated.maintenance_message == "Back at noon"
