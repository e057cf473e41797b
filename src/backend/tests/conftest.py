"""Pytest configuration and fixtures for inspection workflow tests."""

from datetime import datetime, timezone
from typing import AsyncGenerator, Awaitable, Callable
import uuid

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import fastapi_app as app
from app.models.base import Base
# Import all models to ensure they're registered with Base.metadata
from app.models import (
    User, UserRole, District, MaintenanceUnit, InspectorUnit, Building,
    Checklist, ChecklistElement, ElementCatalog, InspectionType,
    Task, TaskStatus, TaskPriority,
)
from app.core.deps import get_db
from app.core.security import get_password_hash
from app.services import act_storage as act_storage_module
from app.services.act_storage import ActStorageService

# Test database URL (use SQLite for tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create test database engine with shared connection."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(db_engine) -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client with database override."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with async_session() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def act_storage(tmp_path, monkeypatch) -> ActStorageService:
    """Keep rendered acts in a per-test directory."""
    storage = ActStorageService(str(tmp_path / "acts"))
    monkeypatch.setattr(act_storage_module, "_act_storage", storage)
    return storage


async def _create_user(
    db: AsyncSession,
    email: str,
    role: UserRole,
    first_name: str,
    last_name: str,
    phone: str | None = None,
) -> User:
    user = User(
        id=uuid.uuid4(),
        email=email,
        hashed_password=get_password_hash("TestPassword123!"),
        first_name=first_name,
        last_name=last_name,
        phone=phone,
        role=role,
        is_active=True,
    )
    db.add(user)
    await db.commit()
    return user


@pytest_asyncio.fixture
async def specialist_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "specialist@example.com", UserRole.SPECIALIST, "Sam", "Specialist")


@pytest_asyncio.fixture
async def coordinator_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "coordinator@example.com", UserRole.COORDINATOR, "Cora", "Coordinator")


@pytest_asyncio.fixture
async def inspector_user(db_session: AsyncSession) -> User:
    return await _create_user(
        db_session, "inspector@example.com", UserRole.INSPECTOR, "Ivan", "Inspector", phone="+15550100"
    )


@pytest_asyncio.fixture
async def other_inspector(db_session: AsyncSession) -> User:
    """Inspector without any unit grant."""
    return await _create_user(db_session, "other@example.com", UserRole.INSPECTOR, "Olga", "Other")


@pytest_asyncio.fixture
async def district(db_session: AsyncSession) -> District:
    district = District(id=uuid.uuid4(), name="Central")
    db_session.add(district)
    await db_session.commit()
    return district


@pytest_asyncio.fixture
async def unit(db_session: AsyncSession, district: District) -> MaintenanceUnit:
    unit = MaintenanceUnit(id=uuid.uuid4(), name="Maintenance Unit 7", district_id=district.id)
    db_session.add(unit)
    await db_session.commit()
    return unit


@pytest_asyncio.fixture
async def unit_grant(db_session: AsyncSession, inspector_user: User, unit: MaintenanceUnit) -> InspectorUnit:
    grant = InspectorUnit(id=uuid.uuid4(), user_id=inspector_user.id, unit_id=unit.id)
    db_session.add(grant)
    await db_session.commit()
    return grant


@pytest_asyncio.fixture
async def building(db_session: AsyncSession, district: District, unit: MaintenanceUnit) -> Building:
    building = Building(
        id=uuid.uuid4(),
        address="12 Garden Street",
        construction_year=1968,
        district_id=district.id,
        unit_id=unit.id,
    )
    db_session.add(building)
    await db_session.commit()
    return building


@pytest_asyncio.fixture
async def building_without_unit(db_session: AsyncSession, district: District) -> Building:
    building = Building(
        id=uuid.uuid4(),
        address="3 Orphan Lane",
        district_id=district.id,
        unit_id=None,
    )
    db_session.add(building)
    await db_session.commit()
    return building


@pytest_asyncio.fixture
async def checklist(db_session: AsyncSession) -> Checklist:
    """Spring checklist whose elements are stored out of display order."""
    checklist = Checklist(
        id=uuid.uuid4(),
        title="Spring general inspection",
        inspection_type=InspectionType.SPRING,
    )
    db_session.add(checklist)

    for name, category, order_index in (
        ("Facade", "envelope", 3),
        ("Roof", "envelope", 1),
        ("Foundation", "structure", 2),
    ):
        element = ElementCatalog(id=uuid.uuid4(), name=name, category=category)
        db_session.add(element)
        db_session.add(ChecklistElement(
            id=uuid.uuid4(),
            checklist_id=checklist.id,
            element_id=element.id,
            order_index=order_index,
        ))
    await db_session.commit()
    return checklist


@pytest_asyncio.fixture
async def checklist_elements(db_session: AsyncSession, checklist: Checklist) -> list[ChecklistElement]:
    """Elements of the checklist in display order (Roof, Foundation, Facade)."""
    from app.services.checklist_catalog import ChecklistCatalog

    return await ChecklistCatalog(db_session).ordered_elements(checklist.id)


@pytest_asyncio.fixture
async def other_checklist_element(db_session: AsyncSession) -> ChecklistElement:
    """Element that belongs to a different checklist."""
    other = Checklist(id=uuid.uuid4(), title="Winter readiness", inspection_type=InspectionType.WINTER)
    element = ElementCatalog(id=uuid.uuid4(), name="Chimney", category="heating")
    link = ChecklistElement(id=uuid.uuid4(), checklist_id=other.id, element_id=element.id, order_index=1)
    db_session.add_all([other, element, link])
    await db_session.commit()
    return link


TaskFactory = Callable[..., Awaitable[Task]]


@pytest_asyncio.fixture
async def make_task(
    db_session: AsyncSession,
    building: Building,
    checklist: Checklist,
    inspector_user: User,
    unit_grant: InspectorUnit,
) -> TaskFactory:
    """Factory inserting a task directly in a given status."""

    async def _make(status: TaskStatus = TaskStatus.NEW, title: str = "Spring inspection") -> Task:
        task = Task(
            id=uuid.uuid4(),
            building_id=building.id,
            checklist_id=checklist.id,
            inspector_id=inspector_user.id,
            title=title,
            priority=TaskPriority.NORMAL,
            status=status,
            scheduled_date=datetime(2026, 4, 15, 9, 0, tzinfo=timezone.utc),
        )
        db_session.add(task)
        await db_session.commit()
        return task

    return _make
