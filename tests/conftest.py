# tests/conftest.py
import os

# Environment must be in place before anything reads the config
os.environ["APP_TITLE"] = "Akshaya Appointments (test)"
os.environ["APP_VERSION"] = "1.0.0"
os.environ["ENVIRONMENT"] = "development"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["JWT_SECRET"] = "test-only-signing-secret-0123456789abcdef"
os.environ.pop("DB_HOST", None)
os.environ.pop("NOTIFY_WEBHOOK_URL", None)
os.environ.pop("LOG_FORMAT", None)

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

import httpx
import pytest

from common.config import initialize_config

CONFIG = initialize_config()

from app.db import DbManager
from app.db.models import (
    Appointment,
    AppointmentStatus,
    Center,
    DbBaseModel,
    SelectedDocument,
    Service,
    Staff,
    StaffPermission,
    User,
    UserRole,
)
from app.services.v1 import (
    AuthorizationGuard,
    NotificationDispatcher,
    Principal,
    SettingsCache,
    issue_token,
)

TODAY = date.today()
TOMORROW = TODAY + timedelta(days=1)

SERVICE_DOCUMENTS = [
    {
        "name": "Aadhaar Card",
        "requirement": "mandatory",
        "alternatives": [{"name": "Voter ID"}, {"name": "Passport"}],
    },
    {"name": "Ration Card", "requirement": "mandatory", "alternatives": []},
    {"name": "Salary Slip", "requirement": "optional", "alternatives": []},
]


class RecordingChannel:
    """External channel that remembers what it was asked to send."""

    name = "recording"

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []

    async def send(self, payload) -> None:
        if self.fail:
            raise ConnectionError("gateway unreachable")
        self.sent.append(payload)


@dataclass
class World:
    center: Center
    other_center: Center
    service: Service
    citizen: User
    other_citizen: User
    staff_user: User
    staff: Staff
    other_staff_user: User
    limited_staff_user: User
    admin: User


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def db_manager(tmp_path):
    manager = DbManager(
        url=f"sqlite+aiosqlite:///{tmp_path}/test.db",
        pool_size=5,
        max_overflow=5,
    )
    async with manager.engine.begin() as conn:
        await conn.run_sync(DbBaseModel.metadata.create_all)
    yield manager
    await manager.dispose()


@pytest.fixture
async def session(db_manager):
    db = db_manager.session_maker()
    try:
        yield db
    finally:
        await db.close()


def _staff(user: User, center: Center, permissions: Optional[list] = None) -> Staff:
    staff = Staff(user_id=user.user_id, center_id=center.center_id)
    if permissions is not None:
        staff.permissions = [{"action": p.value, "granted": True} for p in permissions]
    return staff


@pytest.fixture
async def world(db_manager) -> World:
    async with db_manager.session() as db:
        center = Center(name="Akshaya Thampanoor", address="Thiruvananthapuram")
        other_center = Center(name="Akshaya Kaloor", address="Kochi")
        service = Service(
            name="Income Certificate",
            category="Certificates",
            fee=Decimal("50.00"),
            documents=SERVICE_DOCUMENTS,
        )
        citizen = User(name="Anil", email="anil@example.com", role=UserRole.USER)
        other_citizen = User(name="Beena", email="beena@example.com", role=UserRole.USER)
        staff_user = User(name="Priya", email="priya@example.com", role=UserRole.STAFF)
        other_staff_user = User(name="Ravi", email="ravi@example.com", role=UserRole.STAFF)
        limited_staff_user = User(name="Manu", email="manu@example.com", role=UserRole.STAFF)
        admin = User(name="Admin", email="admin@example.com", role=UserRole.ADMIN)
        db.add_all(
            [
                center,
                other_center,
                service,
                citizen,
                other_citizen,
                staff_user,
                other_staff_user,
                limited_staff_user,
                admin,
            ]
        )
        await db.flush()

        staff = _staff(staff_user, center)
        db.add_all(
            [
                staff,
                _staff(other_staff_user, other_center),
                _staff(
                    limited_staff_user,
                    center,
                    permissions=[StaffPermission.MANAGE_APPOINTMENTS],
                ),
            ]
        )

    return World(
        center=center,
        other_center=other_center,
        service=service,
        citizen=citizen,
        other_citizen=other_citizen,
        staff_user=staff_user,
        staff=staff,
        other_staff_user=other_staff_user,
        limited_staff_user=limited_staff_user,
        admin=admin,
    )


@pytest.fixture
def token_for():
    def _token(user: User, expires_delta: Optional[timedelta] = None) -> str:
        return issue_token(CONFIG.auth, user.user_id, user.role, expires_delta)

    return _token


@pytest.fixture
def principal_for(db_manager, token_for):
    async def _principal(user: User) -> Principal:
        async with db_manager.session() as db:
            return await AuthorizationGuard(db, CONFIG.auth).authenticate(token_for(user))

    return _principal


@pytest.fixture
def make_appointment(db_manager):
    """Insert an appointment directly, bypassing booking rules."""

    async def _make(
        world: World,
        status: AppointmentStatus = AppointmentStatus.PENDING,
        appointment_date: date = TOMORROW,
        time_slot: str = "10:00 AM",
        documents: Optional[list[tuple[str, Optional[str]]]] = None,
        center: Optional[Center] = None,
        service: Optional[Service] = None,
    ) -> Appointment:
        documents = (
            documents
            if documents is not None
            else [("Aadhaar Card", None), ("Ration Card", None)]
        )
        async with db_manager.session() as db:
            appointment = Appointment(
                user_id=world.citizen.user_id,
                service_id=(service or world.service).service_id,
                center_id=(center or world.center).center_id,
                appointment_date=appointment_date,
                time_slot=time_slot,
                status=status,
                selected_documents=[
                    SelectedDocument(
                        position=i,
                        document_name=name,
                        is_alternative=alternative is not None,
                        alternative_name=alternative,
                    )
                    for i, (name, alternative) in enumerate(documents)
                ],
            )
            db.add(appointment)
        return appointment

    return _make


@pytest.fixture
def channel() -> RecordingChannel:
    return RecordingChannel()


@pytest.fixture
def dispatcher(channel) -> NotificationDispatcher:
    return NotificationDispatcher(channels=[channel])


@pytest.fixture
def settings_cache() -> SettingsCache:
    return SettingsCache(ttl_seconds=60)


@pytest.fixture
async def client(db_manager, dispatcher, settings_cache):
    from main import app

    app.state.db_manager = db_manager
    app.state.auth_config = CONFIG.auth
    app.state.notification_dispatcher = dispatcher
    app.state.settings_cache = settings_cache

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
