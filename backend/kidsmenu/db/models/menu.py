from __future__ import annotations

from enum import Enum as PyEnum

from sqlalchemy import ForeignKey, JSON, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class SelectionPreset(str, PyEnum):
    PICK_1 = "pick-1"
    PICK_1_2 = "pick-1-2"
    PICK_2 = "pick-2"
    PICK_2_3 = "pick-2-3"


class PresetSlot(str, PyEnum):
    BREAKFAST = "breakfast"
    SNACK = "snack"
    DINNER = "dinner"
    CUSTOM = "custom"


class Menu(Base):
    __tablename__ = "menus"

    household_id: Mapped[str] = mapped_column(ForeignKey("households.id", ondelete="CASCADE"), index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    groups: Mapped[list[dict]] = mapped_column(JSON, default=list, nullable=False)
    preset_slot: Mapped[str | None] = mapped_column(String(16))
    legacy_id: Mapped[str | None] = mapped_column(String(64), index=True)


class KidSelection(Base):
    __tablename__ = "kid_selections"
    __table_args__ = (UniqueConstraint("household_id", "kid_id", name="uq_kid_selections_household_kid"),)

    household_id: Mapped[str] = mapped_column(ForeignKey("households.id", ondelete="CASCADE"), nullable=False)
    kid_id: Mapped[str] = mapped_column(ForeignKey("kid_profiles.id", ondelete="CASCADE"), nullable=False)
    selections: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
