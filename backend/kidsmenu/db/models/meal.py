from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class MealRecord(Base):
    __tablename__ = "meal_records"

    household_id: Mapped[str] = mapped_column(ForeignKey("households.id", ondelete="CASCADE"), index=True, nullable=False)
    menu_id: Mapped[str | None] = mapped_column(ForeignKey("menus.id", ondelete="SET NULL"))
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    legacy_id: Mapped[str | None] = mapped_column(String(64), index=True)


class MealSelection(Base):
    __tablename__ = "meal_selections"

    meal_id: Mapped[str] = mapped_column(ForeignKey("meal_records.id", ondelete="CASCADE"), index=True, nullable=False)
    kid_id: Mapped[str | None] = mapped_column(ForeignKey("kid_profiles.id", ondelete="SET NULL"))
    # Snapshot taken when the meal was recorded; later renames must not touch it.
    kid_name: Mapped[str] = mapped_column(String(128), nullable=False)
    selections: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class MealReview(Base):
    __tablename__ = "meal_reviews"

    meal_id: Mapped[str] = mapped_column(ForeignKey("meal_records.id", ondelete="CASCADE"), index=True, nullable=False)
    kid_id: Mapped[str | None] = mapped_column(ForeignKey("kid_profiles.id", ondelete="SET NULL"))
    kid_name: Mapped[str] = mapped_column(String(128), nullable=False)
    completions: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    earned_star: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
