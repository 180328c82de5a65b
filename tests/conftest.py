"""Shared pytest fixtures for all test suites."""

from collections.abc import Callable, Generator
from datetime import date, datetime, timedelta, timezone

import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from tripline.db.engine import init_db
from tripline.db.inmemory import InMemoryPlanVersionRepository, InMemoryTripRepository
from tripline.models.blocks import TimeBlock, selection_from_fields
from tripline.models.common import BlockType
from tripline.models.trip import ActivityOption, CitySegment, MealOption, Trip
from tripline.scheduling.versions import PlanVersionManager

BlockFactory = Callable[..., TimeBlock]

_TEMPLATE_TIMES = {
    BlockType.morning: ("09:00", "12:00"),
    BlockType.lunch: ("12:00", "13:30"),
    BlockType.afternoon: ("13:30", "17:00"),
    BlockType.dinner: ("18:00", "20:00"),
    BlockType.evening: ("20:30", "22:30"),
}


@pytest.fixture
def sqlite_engine() -> Generator[Engine, None, None]:
    """In-memory SQLite engine with all tables created."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(sqlite_engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=sqlite_engine, expire_on_commit=False)


@pytest.fixture
def session(session_factory: sessionmaker[Session]) -> Generator[Session, None, None]:
    with session_factory() as session:
        yield session


@pytest.fixture
def paris_segment() -> CitySegment:
    """Three-day segment with five attractions and three restaurants."""
    return CitySegment(
        id="seg-paris",
        name="Paris",
        start_date=date(2026, 3, 15),
        end_date=date(2026, 3, 17),
        order_index=0,
        activities=[
            ActivityOption(id="louvre", name="Louvre", category="museum", duration_minutes=180),
            ActivityOption(id="orsay", name="Musée d'Orsay", category="museum"),
            ActivityOption(id="eiffel", name="Eiffel Tower", category="landmark"),
            ActivityOption(id="montmartre", name="Montmartre Walk", category="walk"),
            ActivityOption(id="seine", name="Seine Cruise", category="tour"),
        ],
        meals=[
            MealOption(id="bistro", name="Le Petit Bistro", cuisine_type="french"),
            MealOption(id="creperie", name="Crêperie du Marché", cuisine_type="breton"),
            MealOption(id="brasserie", name="Brasserie Lipp", cuisine_type="french", price_level=3),
        ],
    )


@pytest.fixture
def trip(paris_segment: CitySegment) -> Trip:
    return Trip(
        id="trip-paris",
        destination="Paris",
        start_date=date(2026, 3, 15),
        end_date=date(2026, 3, 17),
        segments=[paris_segment],
    )


@pytest.fixture
def two_city_trip(paris_segment: CitySegment) -> Trip:
    """Paris then Lyon, sharing 2026-03-17 as the travel day."""
    lyon = CitySegment(
        id="seg-lyon",
        name="Lyon",
        start_date=date(2026, 3, 17),
        end_date=date(2026, 3, 19),
        order_index=1,
        activities=[
            ActivityOption(id="fourviere", name="Fourvière Basilica"),
            ActivityOption(id="traboules", name="Traboules Tour"),
        ],
        meals=[MealOption(id="bouchon", name="Bouchon Lyonnais", cuisine_type="lyonnaise")],
    )
    return Trip(
        id="trip-two-city",
        destination="France",
        start_date=date(2026, 3, 15),
        end_date=date(2026, 3, 19),
        segments=[paris_segment, lyon],
    )


@pytest.fixture
def make_block() -> BlockFactory:
    """Factory for blocks with template times and stable ids derived from the position."""

    def _make(
        day: date,
        block_type: BlockType,
        activity: str | None = None,
        meal: str | None = None,
        segment_id: str | None = None,
        block_id: str | None = None,
    ) -> TimeBlock:
        start, end = _TEMPLATE_TIMES[block_type]
        return TimeBlock(
            id=block_id or f"{day.isoformat()}-{block_type.value}",
            date=day,
            block_type=block_type,
            start_time=start,
            end_time=end,
            segment_id=segment_id,
            selection=selection_from_fields(activity, meal),
        )

    return _make


@pytest.fixture
def initial_blocks(make_block: BlockFactory) -> list[TimeBlock]:
    """Valid three-day Paris schedule: every day has an attraction."""
    d1, d2, d3 = date(2026, 3, 15), date(2026, 3, 16), date(2026, 3, 17)
    return [
        make_block(d1, BlockType.morning, activity="louvre"),
        make_block(d1, BlockType.lunch, meal="bistro"),
        make_block(d1, BlockType.afternoon),
        make_block(d1, BlockType.dinner),
        make_block(d2, BlockType.morning, activity="eiffel"),
        make_block(d2, BlockType.lunch),
        make_block(d2, BlockType.afternoon, activity="orsay"),
        make_block(d2, BlockType.dinner, meal="brasserie"),
        make_block(d3, BlockType.morning, activity="montmartre"),
        make_block(d3, BlockType.lunch),
        make_block(d3, BlockType.afternoon),
        make_block(d3, BlockType.dinner),
    ]


@pytest.fixture
def version_repo() -> InMemoryPlanVersionRepository:
    return InMemoryPlanVersionRepository()


@pytest.fixture
def trip_repo() -> InMemoryTripRepository:
    return InMemoryTripRepository()


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    """Clock advancing one minute per call from 2026-03-01T10:00Z."""
    start = datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)
    calls = {"n": 0}

    def _now() -> datetime:
        calls["n"] += 1
        return start + timedelta(minutes=calls["n"])

    return _now


@pytest.fixture
def manager(
    version_repo: InMemoryPlanVersionRepository, fixed_clock: Callable[[], datetime]
) -> PlanVersionManager:
    return PlanVersionManager(version_repo, clock=fixed_clock)
