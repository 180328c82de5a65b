"""FastAPI dependencies wiring repositories and the version manager to a session."""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.orm import Session

from tripline.config import get_settings
from tripline.db.engine import get_session
from tripline.db.repositories import PlanVersionRepository, TripRepository
from tripline.db.sql_repositories import SqlPlanVersionRepository, SqlTripRepository
from tripline.scheduling.versions import PlanVersionManager


def get_version_repository(
    session: Annotated[Session, Depends(get_session)],
) -> PlanVersionRepository:
    return SqlPlanVersionRepository(session)


def get_trip_repository(
    session: Annotated[Session, Depends(get_session)],
) -> TripRepository:
    return SqlTripRepository(session)


def get_version_manager(
    repository: Annotated[PlanVersionRepository, Depends(get_version_repository)],
) -> PlanVersionManager:
    return PlanVersionManager(repository, settings=get_settings())
