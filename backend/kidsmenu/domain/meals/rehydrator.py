"""Rebuild nested meal aggregates from the flat meal/selection/review join.

Expected row keys: ``meal_id, menu_id, date, completed_at`` for the meal,
``sel_id, sel_kid_id, sel_kid_name, sel_selections`` for the optional
selection and ``rev_id, rev_kid_id, rev_kid_name, rev_completions,
rev_earned_star`` for the optional review. A meal with several selections and
several reviews shows up once per selection x review pair.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Iterable, Mapping

from ..schemas import MealRecordOut, MealReviewOut, MealSelectionOut

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
UNKNOWN_KID_NAME = "Unknown"


def to_epoch_ms(value: Any) -> int | None:
    """Convert a driver timestamp (datetime, number or ISO string) to epoch milliseconds."""

    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return (value - EPOCH) // timedelta(milliseconds=1)
    if isinstance(value, date):
        return to_epoch_ms(datetime(value.year, value.month, value.day))
    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        return int(value)
    if isinstance(value, str):
        try:
            return int(Decimal(value))
        except ArithmeticError:
            return to_epoch_ms(datetime.fromisoformat(value.replace("Z", "+00:00")))
    raise TypeError(f"Unsupported timestamp value {value!r}")


def _json_value(value: Any, default: Any) -> Any:
    if value is None:
        return default
    if isinstance(value, (str, bytes)):
        return json.loads(value)
    return value


@dataclass
class _MealAccumulator:
    id: str
    menu_id: str | None
    date: int
    completed_at: int
    selections: dict[str, MealSelectionOut] = field(default_factory=dict)
    reviews: dict[str, MealReviewOut] = field(default_factory=dict)


def rehydrate_meals(rows: Iterable[Mapping[str, Any]]) -> list[MealRecordOut]:
    meals: dict[str, _MealAccumulator] = {}

    for row in rows:
        meal_id = str(row["meal_id"])
        meal = meals.get(meal_id)
        if meal is None:
            date_ms = to_epoch_ms(row["date"]) or 0
            completed_ms = to_epoch_ms(row["completed_at"])
            meal = meals[meal_id] = _MealAccumulator(
                id=meal_id,
                menu_id=str(row["menu_id"]) if row["menu_id"] is not None else None,
                date=date_ms,
                completed_at=completed_ms if completed_ms is not None else date_ms,
            )

        sel_id = row.get("sel_id")
        if sel_id is not None and str(sel_id) not in meal.selections:
            meal.selections[str(sel_id)] = MealSelectionOut(
                kid_id=row.get("sel_kid_id"),
                kid_name=row.get("sel_kid_name") or UNKNOWN_KID_NAME,
                selections=_json_value(row.get("sel_selections"), {}),
                timestamp=meal.date,
            )

        rev_id = row.get("rev_id")
        if rev_id is not None and str(rev_id) not in meal.reviews:
            meal.reviews[str(rev_id)] = MealReviewOut(
                kid_id=row.get("rev_kid_id"),
                kid_name=row.get("rev_kid_name") or UNKNOWN_KID_NAME,
                completions=_json_value(row.get("rev_completions"), {}),
                earned_star=bool(row.get("rev_earned_star")),
            )

    return [
        MealRecordOut(
            id=meal.id,
            menu_id=meal.menu_id,
            date=meal.date,
            completed_at=meal.completed_at,
            selections=list(meal.selections.values()),
            reviews=list(meal.reviews.values()),
        )
        for meal in meals.values()
    ]
