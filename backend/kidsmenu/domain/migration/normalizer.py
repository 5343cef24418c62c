"""Upgrade historical document shapes to the current canonical shape.

Every ``normalize_*`` function is pure and idempotent: it never mutates its
argument, never raises on missing legacy fields and returns the same document
when applied to its own output. Route handlers call these on payloads cached
by old browsers, the migrator calls them on the legacy JSON files.
"""

from __future__ import annotations

from typing import Any, Mapping

from ...db.models.menu import SelectionPreset

Document = dict[str, Any]

CATEGORY_TAGS: dict[str, str] = {
    "main": "Protein",
    "side": "Veggie",
}

MAIN_GROUP_ID = "main-group"
SIDE_GROUP_ID = "side-group"

DEFAULT_AVATAR_COLOR = "blue"

LEGACY_FOOD_FIELDS = frozenset({"category"})
LEGACY_MENU_FIELDS = frozenset({"mains", "sides"})
LEGACY_SELECTION_FIELDS = frozenset({"mainId", "sideIds"})
LEGACY_REVIEW_FIELDS = frozenset({"mainCompletion", "sideCompletions"})


def _non_empty_list(value: Any) -> bool:
    return isinstance(value, list) and len(value) > 0


def _non_empty_dict(value: Any) -> bool:
    return isinstance(value, Mapping) and len(value) > 0


def _without(doc: Mapping[str, Any], fields: frozenset[str]) -> Document:
    return {key: value for key, value in doc.items() if key not in fields}


def has_canonical_tags(doc: Mapping[str, Any]) -> bool:
    return _non_empty_list(doc.get("tags"))


def has_canonical_groups(doc: Mapping[str, Any]) -> bool:
    return _non_empty_list(doc.get("groups"))


def has_canonical_selections(doc: Mapping[str, Any]) -> bool:
    return _non_empty_dict(doc.get("selections"))


def has_canonical_completions(doc: Mapping[str, Any]) -> bool:
    return _non_empty_dict(doc.get("completions"))


def drops_main_completion(doc: Mapping[str, Any]) -> bool:
    """True when normalizing ``doc`` discards a legacy ``mainCompletion`` value.

    The legacy field is not keyed by food id, so there is nothing to carry it
    over to.
    """

    return not has_canonical_completions(doc) and doc.get("mainCompletion") is not None


def normalize_food(doc: Mapping[str, Any]) -> Document:
    if has_canonical_tags(doc):
        tags = [str(tag) for tag in doc["tags"]]
    else:
        tag = CATEGORY_TAGS.get(doc.get("category") or "")
        tags = [tag] if tag else []

    result = _without(doc, LEGACY_FOOD_FIELDS)
    result["tags"] = tags
    result["imageUrl"] = doc.get("imageUrl") or None
    return result


def normalize_profile(doc: Mapping[str, Any]) -> Document:
    result = dict(doc)
    result["avatarColor"] = doc.get("avatarColor") or DEFAULT_AVATAR_COLOR
    if not doc.get("avatarAnimal"):
        result.pop("avatarAnimal", None)
    return result


def _copy_group(group: Mapping[str, Any]) -> Document:
    copied = dict(group)
    copied["foodIds"] = list(group.get("foodIds") or [])
    for key in ("filterTags", "excludeTags"):
        if key in copied and copied[key] is not None:
            copied[key] = list(copied[key])
    return copied


def synthesize_groups(mains: Any, sides: Any) -> list[Document]:
    groups: list[Document] = []
    if _non_empty_list(mains):
        groups.append(
            {
                "id": MAIN_GROUP_ID,
                "label": "Main Dishes",
                "foodIds": list(mains),
                "selectionPreset": SelectionPreset.PICK_1.value,
                "order": 0,
            }
        )
    if _non_empty_list(sides):
        groups.append(
            {
                "id": SIDE_GROUP_ID,
                "label": "Side Dishes",
                "foodIds": list(sides),
                "selectionPreset": SelectionPreset.PICK_1_2.value,
                "order": 1,
            }
        )
    return groups


def normalize_menu(doc: Mapping[str, Any]) -> Document:
    if has_canonical_groups(doc):
        groups = [_copy_group(group) for group in doc["groups"] if isinstance(group, Mapping)]
    else:
        groups = synthesize_groups(doc.get("mains"), doc.get("sides"))

    result = _without(doc, LEGACY_MENU_FIELDS)
    result["groups"] = groups
    return result


def normalize_selection(doc: Mapping[str, Any]) -> Document:
    if has_canonical_selections(doc):
        selections = {str(group_id): list(food_ids or []) for group_id, food_ids in doc["selections"].items()}
    else:
        selections = {}
        if "mainId" in doc:
            main_id = doc["mainId"]
            selections[MAIN_GROUP_ID] = [main_id] if main_id else []
        if "sideIds" in doc:
            selections[SIDE_GROUP_ID] = list(doc["sideIds"] or [])

    result = _without(doc, LEGACY_SELECTION_FIELDS)
    result["selections"] = selections
    return result


def normalize_review(doc: Mapping[str, Any]) -> Document:
    if has_canonical_completions(doc):
        completions = dict(doc["completions"])
    else:
        # mainCompletion is dropped on purpose, see drops_main_completion().
        side_completions = doc.get("sideCompletions")
        completions = dict(side_completions) if isinstance(side_completions, Mapping) else {}

    result = _without(doc, LEGACY_REVIEW_FIELDS)
    result["completions"] = completions
    result["earnedStar"] = bool(doc.get("earnedStar"))
    return result


def normalize_meal(doc: Mapping[str, Any]) -> Document:
    result = dict(doc)
    result["selections"] = [normalize_selection(sel) for sel in doc.get("selections") or [] if isinstance(sel, Mapping)]
    result["reviews"] = [normalize_review(rev) for rev in doc.get("reviews") or [] if isinstance(rev, Mapping)]
    return result


def normalize_shared_menu(doc: Mapping[str, Any]) -> Document:
    groups: list[Document] = []
    for group in doc.get("groups") or []:
        if not isinstance(group, Mapping):
            continue
        copied = dict(group)
        copied["options"] = [dict(option) for option in group.get("options") or [] if isinstance(option, Mapping)]
        groups.append(copied)

    result = dict(doc)
    result["groups"] = groups
    result["isActive"] = bool(doc.get("isActive", True))
    if not doc.get("description"):
        result.pop("description", None)
    return result


def normalize_shared_response(doc: Mapping[str, Any]) -> Document:
    selections = doc.get("selections")
    result = dict(doc)
    result["selections"] = (
        {str(group_id): list(option_ids or []) for group_id, option_ids in selections.items()}
        if isinstance(selections, Mapping)
        else {}
    )
    return result
