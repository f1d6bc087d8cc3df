# app/services/v1/settings_service.py
import asyncio
import time
from dataclasses import dataclass
from typing import Callable, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from app.db.models import SystemSettings, DEFAULT_MAINTENANCE_MESSAGE
from app.db.schemas import SystemSettingsUpdate
from common.logger import get_app_logger

logger = get_app_logger(__name__)

SETTINGS_ROW_ID = 1
# NOT NULL columns; a None here never overwrites the stored value
REQUIRED_FIELDS = frozenset({"maintenance_mode", "maintenance_message"})


@dataclass(frozen=True)
class SettingsSnapshot:
    maintenance_mode: bool = False
    maintenance_message: str = DEFAULT_MAINTENANCE_MESSAGE
    estimated_downtime: Optional[str] = None

    @classmethod
    def from_row(cls, row: Optional[SystemSettings]) -> "SettingsSnapshot":
        if row is None:
            return cls()
        return cls(
            maintenance_mode=row.maintenance_mode,
            maintenance_message=row.maintenance_message or DEFAULT_MAINTENANCE_MESSAGE,
            estimated_downtime=row.estimated_downtime,
        )


class SettingsService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_settings(self) -> SettingsSnapshot:
        return SettingsSnapshot.from_row(await self.db.get(SystemSettings, SETTINGS_ROW_ID))

    async def update_settings(
        self,
        data: SystemSettingsUpdate,
        cache: Optional["SettingsCache"] = None,
    ) -> SettingsSnapshot:
        row = await self.db.get(SystemSettings, SETTINGS_ROW_ID)
        if row is None:
            row = SystemSettings(
                settings_id=SETTINGS_ROW_ID,
                maintenance_mode=False,
                maintenance_message=DEFAULT_MAINTENANCE_MESSAGE,
            )
            self.db.add(row)

        changes = data.model_dump(exclude_unset=True)
        for key, value in changes.items():
            if value is None and key in REQUIRED_FIELDS:
                continue
            setattr(row, key, value)

        await self.db.commit()
        if cache is not None:
            cache.invalidate()

        logger.info("System settings updated", fields=sorted(changes))
        return SettingsSnapshot.from_row(row)


class SettingsCache:
    """
    Pull-through cache of the settings row.

    One instance per app (app.state.settings_cache). get() reloads once the
    cached value is older than `ttl_seconds`; invalidate() forces the next
    get() to reload.
    """

    def __init__(
        self,
        ttl_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._value: Optional[SettingsSnapshot] = None
        self._fetched_at: Optional[float] = None
        self._lock = asyncio.Lock()

    def is_fresh(self) -> bool:
        if self._value is None or self._fetched_at is None:
            return False
        return (self._clock() - self._fetched_at) < self.ttl_seconds

    async def get(self, session: AsyncSession) -> SettingsSnapshot:
        if self.is_fresh():
            return self._value  # type: ignore[return-value]

        async with self._lock:
            if self.is_fresh():
                return self._value  # type: ignore[return-value]
            value = await SettingsService(session).get_settings()
            self._value = value
            self._fetched_at = self._clock()
            return value

    def invalidate(self) -> None:
        self._value = None
        self._fetched_at = None


__all__ = ["SettingsSnapshot", "SettingsService", "SettingsCache", "SETTINGS_ROW_ID"]
