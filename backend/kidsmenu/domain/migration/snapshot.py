from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ...core.logging import get_logger

logger = get_logger(__name__)

FOODS_FILE = "foods.json"
PROFILES_FILE = "profiles.json"
MENUS_FILE = "menus.json"
MEALS_FILE = "meals.json"
SHARED_MENUS_FILE = "shared-menus.json"


@dataclass
class LegacySnapshot:
    """Raw documents from the JSON-file era, as read from disk."""

    foods: list[dict[str, Any]] = field(default_factory=list)
    profiles: list[dict[str, Any]] = field(default_factory=list)
    menus: list[dict[str, Any]] = field(default_factory=list)
    active_menu_id: str | None = None
    selections: list[dict[str, Any]] = field(default_factory=list)
    meals: list[dict[str, Any]] = field(default_factory=list)
    shared_menus: list[dict[str, Any]] = field(default_factory=list)
    shared_responses: list[dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_documents(
        cls,
        foods: dict[str, Any] | None = None,
        profiles: dict[str, Any] | None = None,
        menus: dict[str, Any] | None = None,
        meals: dict[str, Any] | None = None,
        shared_menus: dict[str, Any] | None = None,
    ) -> "LegacySnapshot":
        """Build a snapshot from the parsed contents of the five legacy files."""

        foods = foods or {}
        profiles = profiles or {}
        menus = menus or {}
        meals = meals or {}
        shared_menus = shared_menus or {}
        active_menu_id = menus.get("activeMenuId")
        return cls(
            foods=_records(foods, "items", FOODS_FILE),
            profiles=_records(profiles, "profiles", PROFILES_FILE),
            menus=_records(menus, "menus", MENUS_FILE),
            active_menu_id=str(active_menu_id) if active_menu_id else None,
            selections=_records(menus, "selections", MENUS_FILE),
            meals=_records(meals, "meals", MEALS_FILE),
            shared_menus=_records(shared_menus, "menus", SHARED_MENUS_FILE),
            shared_responses=_records(shared_menus, "responses", SHARED_MENUS_FILE),
        )


def _records(document: dict[str, Any], key: str, filename: str) -> list[dict[str, Any]]:
    value = document.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        logger.warning("%s: '%s' is not a list, ignoring it", filename, key)
        return []
    records = [item for item in value if isinstance(item, dict)]
    if len(records) != len(value):
        logger.warning("%s: skipped %d malformed '%s' entries", filename, len(value) - len(records), key)
    return records


def read_json_file_safe(path: Path) -> dict[str, Any]:
    """Parse one legacy file; a missing, unreadable or non-object file yields ``{}``."""

    if not path.exists():
        logger.warning("%s not found, skipping", path.name)
        return {}
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
    except (OSError, ValueError) as exc:
        logger.warning("Failed to parse %s, skipping: %s", path.name, exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("%s has unexpected top-level type %s, skipping", path.name, type(data).__name__)
        return {}
    return data


def load_snapshot(data_dir: Path) -> LegacySnapshot:
    logger.info("Reading legacy data from %s", data_dir)
    return LegacySnapshot.from_documents(
        foods=read_json_file_safe(data_dir / FOODS_FILE),
        profiles=read_json_file_safe(data_dir / PROFILES_FILE),
        menus=read_json_file_safe(data_dir / MENUS_FILE),
        meals=read_json_file_safe(data_dir / MEALS_FILE),
        shared_menus=read_json_file_safe(data_dir / SHARED_MENUS_FILE),
    )
