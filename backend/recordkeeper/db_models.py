"""SQLAlchemy ORM models for result persistence.

This module defines the database schema for:
- Athlete: Athlete registry (birth year drives the wind age rule)
- Discipline: Discipline catalog (comparison direction, category, wind sensitivity)
- Result: One measured performance with its derived PB/SB flags

Tables use indexing for the partition-scoped queries the record engine issues:
- (athlete, discipline) for the standard partition
- (athlete, discipline, equipment_weight) for throws
- (athlete, discipline, hurdle_height) for hurdles
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    String,
    Text,
    Float,
    Integer,
    Boolean,
    DateTime,
    Index,
    ForeignKey,
)
from sqlalchemy.orm import Mapped, mapped_column

from recordkeeper.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Athlete(Base):
    """Athlete registry entry.

    Owned by the athlete management layer; the record engine only reads
    ``birth_year`` to decide whether wind rules apply to a result.
    """

    __tablename__ = "athletes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    birth_year: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Year of birth, age at a result is result year minus this",
    )
    club_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Athlete(id={self.id}, name={self.first_name} {self.last_name}, birth_year={self.birth_year})>"


class Discipline(Base):
    """Discipline catalog entry.

    ``name`` is the short display name ("100m", "Pituus", "60m aj"); the
    wind-sensitivity flag is stored data so new disciplines need no code change.
    """

    __tablename__ = "disciplines"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
        comment="Short display name",
    )
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    category: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        index=True,
        comment="sprints, middleDistance, longDistance, hurdles, jumps, throws, combined",
    )
    unit: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="time or distance",
    )
    lower_is_better: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        comment="True for timed events, False for measured events",
    )
    wind_sensitive: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        comment="Whether wind readings above the legal limit void record eligibility",
    )

    def __repr__(self) -> str:
        return f"<Discipline(id={self.id}, name={self.name}, category={self.category})>"


class Result(Base):
    """One measured performance of an athlete in a discipline.

    ``is_personal_best`` and ``is_season_best`` are derived by the record
    engine and must never be written directly by clients.
    ``is_national_record`` is asserted externally and left untouched by the engine.
    """

    __tablename__ = "results"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    athlete_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("athletes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    discipline_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("disciplines.id"),
        nullable=False,
        index=True,
    )

    # Measurement
    date: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        index=True,
        comment="ISO calendar date YYYY-MM-DD, leading year selects the season",
    )
    value: Mapped[float] = mapped_column(Float, nullable=False)
    result_type: Mapped[str] = mapped_column(
        String(20),
        default="competition",
        nullable=False,
        comment="competition or training",
    )
    competition_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    location: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    placement: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Eligibility and partition inputs
    wind: Mapped[Optional[float]] = mapped_column(Float, nullable=True, comment="m/s, positive is tailwind")
    status: Mapped[Optional[str]] = mapped_column(
        String(10),
        default="valid",
        nullable=True,
        index=True,
        comment="valid, nm, dns, dnf, dq (NULL counts as valid)",
    )
    equipment_weight: Mapped[Optional[float]] = mapped_column(
        Float,
        nullable=True,
        comment="Implement weight in kg, throws only",
    )
    hurdle_height: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment="Hurdle height in cm, hurdles only",
    )
    hurdle_spacing: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # Derived and asserted flags
    is_personal_best: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_season_best: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_national_record: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        nullable=False,
    )

    __table_args__ = (
        Index("ix_results_athlete_discipline", "athlete_id", "discipline_id"),
        Index("ix_results_athlete_discipline_weight", "athlete_id", "discipline_id", "equipment_weight"),
        Index("ix_results_athlete_discipline_height", "athlete_id", "discipline_id", "hurdle_height"),
    )

    def __repr__(self) -> str:
        return (
            f"<Result(id={self.id}, athlete_id={self.athlete_id}, discipline_id={self.discipline_id}, "
            f"value={self.value}, date={self.date}, pb={self.is_personal_best}, sb={self.is_season_best})>"
        )
