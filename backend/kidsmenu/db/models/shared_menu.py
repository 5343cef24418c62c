from __future__ import annotations

from sqlalchemy import Boolean, ForeignKey, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class SharedMenu(Base):
    __tablename__ = "shared_menus"

    household_id: Mapped[str] = mapped_column(ForeignKey("households.id", ondelete="CASCADE"), index=True, nullable=False)
    token: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    groups: Mapped[list[dict]] = mapped_column(JSON, default=list, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    legacy_id: Mapped[str | None] = mapped_column(String(64), index=True)


class SharedMenuResponse(Base):
    __tablename__ = "shared_menu_responses"

    menu_id: Mapped[str] = mapped_column(ForeignKey("shared_menus.id", ondelete="CASCADE"), index=True, nullable=False)
    respondent_name: Mapped[str] = mapped_column(String(128), nullable=False)
    selections: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    legacy_id: Mapped[str | None] = mapped_column(String(64), index=True)
