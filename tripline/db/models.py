"""SQLAlchemy ORM models for trips, plan versions and time blocks."""

from datetime import date, datetime, time
from typing import Any

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Text,
    Time,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JsonType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class TripRecord(Base):
    """Trip table - trip context (segments and option pools) as a JSON document."""

    __tablename__ = "trip"

    trip_id: Mapped[str] = mapped_column(Text, primary_key=True)
    data: Mapped[dict[str, Any]] = mapped_column(JsonType, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


class PlanVersionRecord(Base):
    """Plan version header table - one row per immutable snapshot."""

    __tablename__ = "plan_version"
    __table_args__ = (
        UniqueConstraint("trip_id", "version_number", name="uq_plan_version_trip_number"),
        CheckConstraint("version_number >= 1", name="ck_plan_version_number_positive"),
        Index("idx_plan_version_trip", "trip_id", "version_number"),
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    trip_id: Mapped[str] = mapped_column(Text, nullable=False)
    version_number: Mapped[int] = mapped_column(Integer, nullable=False)
    created_by: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    change_summary: Mapped[str] = mapped_column(Text, nullable=False)

    # Relationships
    blocks: Mapped[list["TimeBlockRecord"]] = relationship(
        "TimeBlockRecord",
        back_populates="plan_version",
        cascade="all, delete-orphan",
        order_by="TimeBlockRecord.date",
    )


class TimeBlockRecord(Base):
    """Time block table - append-only, keyed by (plan_version_id, date, block_type)."""

    __tablename__ = "time_block"
    __table_args__ = (
        CheckConstraint(
            "block_type IN ('morning', 'lunch', 'afternoon', 'dinner', 'evening')",
            name="ck_time_block_type",
        ),
        CheckConstraint(
            "selected_activity_id IS NULL OR selected_meal_id IS NULL",
            name="ck_time_block_single_selection",
        ),
    )

    plan_version_id: Mapped[str] = mapped_column(
        Text, ForeignKey("plan_version.id", ondelete="CASCADE"), primary_key=True
    )
    date: Mapped[date] = mapped_column(Date, primary_key=True)
    block_type: Mapped[str] = mapped_column(Text, primary_key=True)
    # Stable slot identity shared by the same position across versions
    block_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    segment_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    selected_activity_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    selected_meal_id: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships
    plan_version: Mapped["PlanVersionRecord"] = relationship(
        "PlanVersionRecord", back_populates="blocks"
    )
