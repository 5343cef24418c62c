import logging

from kidsmenu.domain.migration import (
    EntityType,
    IdRemapper,
    remap_completion_keys,
    remap_group_food_ids,
    remap_selections,
)

FOOD_MAP = {"f1": "uuid-1", "f2": "uuid-2"}


def test_remap_group_food_ids_replaces_known_ids() -> None:
    groups = [{"id": "g1", "label": "Mains", "foodIds": ["f1", "f2"], "order": 0}]

    remapped = remap_group_food_ids(groups, FOOD_MAP)

    assert remapped == [{"id": "g1", "label": "Mains", "foodIds": ["uuid-1", "uuid-2"], "order": 0}]
    assert groups[0]["foodIds"] == ["f1", "f2"]


def test_unknown_food_id_is_kept_and_logged(caplog) -> None:
    caplog.set_level(logging.WARNING)

    remapped = remap_selections({"g1": ["f1", "f-gone"]}, FOOD_MAP)

    assert remapped == {"g1": ["uuid-1", "f-gone"]}
    assert any("f-gone" in record.getMessage() for record in caplog.records)


def test_completion_keys_remapped_values_untouched() -> None:
    completions = {"f1": "all", "f2": None, "f9": "some"}
    misses: list[tuple[str, str]] = []

    remapped = remap_completion_keys(completions, FOOD_MAP, lambda old_id, where: misses.append((old_id, where)))

    assert remapped == {"uuid-1": "all", "uuid-2": None, "f9": "some"}
    assert misses == [("f9", "completions")]


def test_group_keys_are_not_food_ids() -> None:
    assert remap_selections({"f1": ["f2"]}, FOOD_MAP) == {"f1": ["uuid-2"]}


def test_id_remapper_records_and_collects_misses() -> None:
    remapper = IdRemapper()
    remapper.record(EntityType.FOOD, "f1", "uuid-1")
    remapper.record(EntityType.MENU, "m1", "menu-uuid")
    remapper.record(EntityType.FOOD, None, "ignored")

    assert remapper.get(EntityType.FOOD, "f1") == "uuid-1"
    assert remapper.get(EntityType.MENU, "f1") is None
    assert remapper.get(EntityType.FOOD, None) is None

    assert remapper.groups([{"id": "g", "foodIds": ["f1", "x"]}]) == [{"id": "g", "foodIds": ["uuid-1", "x"]}]
    assert remapper.selections({"g": ["y"]}) == {"g": ["y"]}
    assert [(miss.old_id, miss.where) for miss in remapper.misses] == [("x", "group"), ("y", "selection")]


def test_id_remapper_later_duplicate_wins(caplog) -> None:
    caplog.set_level(logging.WARNING)
    remapper = IdRemapper()
    remapper.record(EntityType.PROFILE, "k1", "first")
    remapper.record(EntityType.PROFILE, "k1", "second")

    assert remapper.get(EntityType.PROFILE, "k1") == "second"
    assert "Duplicate legacy profile id k1" in caplog.text


def test_id_remappers_do_not_share_state() -> None:
    first = IdRemapper()
    first.record(EntityType.FOOD, "f1", "uuid-1")

    assert IdRemapper().get(EntityType.FOOD, "f1") is None


def test_numeric_legacy_ids_match_recorded_string_keys() -> None:
    remapper = IdRemapper()
    remapper.record(EntityType.FOOD, "1", "uuid-1")

    groups = remapper.groups([{"id": "g", "foodIds": [1, 2]}])

    assert groups == [{"id": "g", "foodIds": ["uuid-1", "2"]}]
    assert remap_completion_keys({1: "all"}, {"1": "uuid-1"}) == {"uuid-1": "all"}
    assert [(miss.old_id, miss.where) for miss in remapper.misses] == [("2", "group")]


def test_numeric_and_string_duplicates_are_the_same_legacy_id(caplog) -> None:
    caplog.set_level(logging.WARNING)
    remapper = IdRemapper()
    remapper.record(EntityType.FOOD, "7", "first")
    remapper.record(EntityType.FOOD, 7, "second")

    assert remapper.get(EntityType.FOOD, 7) == "second"
    assert "Duplicate legacy food id 7" in caplog.text
