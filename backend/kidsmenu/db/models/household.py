from __future__ import annotations

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class Household(Base):
    __tablename__ = "households"

    name: Mapped[str] = mapped_column(String(128), nullable=False)
    # Not a declared foreign key: households and menus reference each other.
    active_menu_id: Mapped[str | None] = mapped_column(String(36), index=True)
