from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum as PyEnum
from typing import Any, Callable, Mapping

from ...core.logging import get_logger

logger = get_logger(__name__)

MissHandler = Callable[[str, str], None]


class EntityType(str, PyEnum):
    FOOD = "food"
    PROFILE = "profile"
    MENU = "menu"
    MEAL = "meal"
    SHARED_MENU = "shared_menu"


@dataclass(frozen=True)
class RemapMiss:
    entity: str
    old_id: str
    where: str


def _warn_miss(old_id: str, where: str) -> None:
    logger.warning("Food id %s not found in %s mapping, keeping as-is", old_id, where, extra={"old_id": old_id, "where": where})


def _remap_id(old_id: Any, id_map: Mapping[str, str], where: str, on_miss: MissHandler) -> str:
    # Maps are keyed by str(id); legacy files sometimes hold numeric ids.
    old_id = str(old_id)
    new_id = id_map.get(old_id)
    if new_id is None:
        on_miss(old_id, where)
        return old_id
    return new_id


def remap_group_food_ids(
    groups: list[dict[str, Any]], food_id_map: Mapping[str, str], on_miss: MissHandler = _warn_miss
) -> list[dict[str, Any]]:
    return [
        {**group, "foodIds": [_remap_id(old_id, food_id_map, "group", on_miss) for old_id in group.get("foodIds") or []]}
        for group in groups
    ]


def remap_selections(
    selections: Mapping[str, list[str]], food_id_map: Mapping[str, str], on_miss: MissHandler = _warn_miss
) -> dict[str, list[str]]:
    return {
        group_id: [_remap_id(old_id, food_id_map, "selection", on_miss) for old_id in food_ids or []]
        for group_id, food_ids in selections.items()
    }


def remap_completion_keys(
    completions: Mapping[str, Any], food_id_map: Mapping[str, str], on_miss: MissHandler = _warn_miss
) -> dict[str, Any]:
    # Values are completion statuses and stay untouched.
    return {_remap_id(old_id, food_id_map, "completions", on_miss): status for old_id, status in completions.items()}


@dataclass
class IdRemapper:
    """Old-to-new id tables for one migration run.

    Created by ``migrate()`` and dropped when it returns, so nothing leaks between runs.
    """

    maps: dict[EntityType, dict[str, str]] = field(default_factory=lambda: {entity: {} for entity in EntityType})
    misses: list[RemapMiss] = field(default_factory=list)

    def record(self, entity: EntityType, old_id: str | None, new_id: str) -> None:
        if old_id is None:
            return
        old_id = str(old_id)
        if old_id in self.maps[entity]:
            logger.warning("Duplicate legacy %s id %s, later row wins", entity.value, old_id)
        self.maps[entity][old_id] = new_id

    def get(self, entity: EntityType, old_id: str | None) -> str | None:
        if old_id is None:
            return None
        return self.maps[entity].get(str(old_id))

    def id_map(self, entity: EntityType) -> Mapping[str, str]:
        return self.maps[entity]

    def _food_miss(self, old_id: str, where: str) -> None:
        _warn_miss(old_id, where)
        self.misses.append(RemapMiss(entity=EntityType.FOOD.value, old_id=old_id, where=where))

    def groups(self, groups: list[dict[str, Any]]) -> list[dict[str, Any]]:
        return remap_group_food_ids(groups, self.maps[EntityType.FOOD], self._food_miss)

    def selections(self, selections: Mapping[str, list[str]]) -> dict[str, list[str]]:
        return remap_selections(selections, self.maps[EntityType.FOOD], self._food_miss)

    def completions(self, completions: Mapping[str, Any]) -> dict[str, Any]:
        return remap_completion_keys(completions, self.maps[EntityType.FOOD], self._food_miss)
