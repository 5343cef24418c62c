from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable, Mapping

from sqlalchemy import Select, insert, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from ...core.logging import get_logger
from ...db.models.meal import MealRecord, MealReview, MealSelection
from ...db.models.profile import KidProfile
from ..errors import MealCreationError
from ..migration.normalizer import normalize_review, normalize_selection
from ..schemas import MealRecordOut, MealReviewOut, MealSelectionOut
from .rehydrator import UNKNOWN_KID_NAME, rehydrate_meals, to_epoch_ms

logger = get_logger(__name__)

meal_records = MealRecord.__table__
meal_selections = MealSelection.__table__
meal_reviews = MealReview.__table__
kid_profiles = KidProfile.__table__


def meal_join_query() -> Select:
    """Meal columns plus nullable selection and review columns, in the rehydrator's column contract."""

    mr, ms, rv = meal_records, meal_selections, meal_reviews
    return select(
        mr.c.id.label("meal_id"),
        mr.c.menu_id,
        mr.c.date,
        mr.c.completed_at,
        ms.c.id.label("sel_id"),
        ms.c.kid_id.label("sel_kid_id"),
        ms.c.kid_name.label("sel_kid_name"),
        ms.c.selections.label("sel_selections"),
        rv.c.id.label("rev_id"),
        rv.c.kid_id.label("rev_kid_id"),
        rv.c.kid_name.label("rev_kid_name"),
        rv.c.completions.label("rev_completions"),
        rv.c.earned_star.label("rev_earned_star"),
    ).select_from(
        mr.outerjoin(ms, ms.c.meal_id == mr.c.id).outerjoin(rv, rv.c.meal_id == mr.c.id)
    )


async def get_all_meals(conn: AsyncConnection, household_id: str) -> list[MealRecordOut]:
    stmt = (
        meal_join_query()
        .where(meal_records.c.household_id == household_id)
        .order_by(meal_records.c.date.desc(), meal_records.c.id, meal_selections.c.position, meal_reviews.c.position)
    )
    result = await conn.execute(stmt)
    return rehydrate_meals(result.mappings())


async def get_meal(conn: AsyncConnection, household_id: str, meal_id: str) -> MealRecordOut | None:
    stmt = (
        meal_join_query()
        .where(meal_records.c.household_id == household_id, meal_records.c.id == meal_id)
        .order_by(meal_selections.c.position, meal_reviews.c.position)
    )
    result = await conn.execute(stmt)
    meals = rehydrate_meals(result.mappings())
    return meals[0] if meals else None


async def _kid_names(conn: AsyncConnection, household_id: str, kid_ids: Iterable[str]) -> dict[str, str]:
    ids = sorted({kid_id for kid_id in kid_ids if kid_id})
    if not ids:
        return {}
    result = await conn.execute(
        select(kid_profiles.c.id, kid_profiles.c.name).where(
            kid_profiles.c.id.in_(ids), kid_profiles.c.household_id == household_id
        )
    )
    return {row.id: row.name for row in result}


async def _insert_selection(conn: AsyncConnection, meal_id: str, position: int, kid_id: str | None, kid_name: str, selections: dict) -> None:
    await conn.execute(
        insert(meal_selections).values(
            meal_id=meal_id, kid_id=kid_id, kid_name=kid_name, selections=selections, position=position
        )
    )


async def _insert_review(
    conn: AsyncConnection, meal_id: str, position: int, kid_id: str | None, kid_name: str, completions: dict, earned_star: bool
) -> None:
    await conn.execute(
        insert(meal_reviews).values(
            meal_id=meal_id,
            kid_id=kid_id,
            kid_name=kid_name,
            completions=completions,
            earned_star=earned_star,
            position=position,
        )
    )


async def create_meal(
    engine: AsyncEngine,
    household_id: str,
    menu_id: str | None,
    selections: list[Mapping[str, Any]],
    reviews: list[Mapping[str, Any]],
    *,
    now: datetime | None = None,
) -> MealRecordOut:
    """Record a finished meal with its per-kid selections and reviews in one transaction.

    Kid names are snapshotted from the profiles at this moment. Any failure rolls back
    the parent row as well and is reported as ``MealCreationError``.
    """

    now = now or datetime.now(timezone.utc)
    canonical_selections = [normalize_selection(sel) for sel in selections]
    canonical_reviews = [normalize_review(rev) for rev in reviews]

    built_selections: list[MealSelectionOut] = []
    built_reviews: list[MealReviewOut] = []
    date_ms = to_epoch_ms(now)

    try:
        async with engine.begin() as conn:
            result = await conn.execute(
                insert(meal_records)
                .values(household_id=household_id, menu_id=menu_id, date=now, completed_at=now)
                .returning(meal_records.c.id)
            )
            meal_id = result.scalar_one()

            kid_ids = [doc.get("kidId") for doc in [*canonical_selections, *canonical_reviews]]
            names = await _kid_names(conn, household_id, kid_ids)

            for position, sel in enumerate(canonical_selections):
                kid_id = sel.get("kidId")
                kid_name = names.get(kid_id, UNKNOWN_KID_NAME)
                await _insert_selection(conn, meal_id, position, kid_id, kid_name, sel["selections"])
                built_selections.append(
                    MealSelectionOut(kid_id=kid_id, kid_name=kid_name, selections=sel["selections"], timestamp=date_ms)
                )

            for position, rev in enumerate(canonical_reviews):
                kid_id = rev.get("kidId")
                kid_name = names.get(kid_id, UNKNOWN_KID_NAME)
                await _insert_review(conn, meal_id, position, kid_id, kid_name, rev["completions"], rev["earnedStar"])
                built_reviews.append(
                    MealReviewOut(
                        kid_id=kid_id, kid_name=kid_name, completions=rev["completions"], earned_star=rev["earnedStar"]
                    )
                )
    except SQLAlchemyError as exc:
        logger.exception("Transaction failed in create_meal", extra={"household_id": household_id, "menu_id": menu_id})
        raise MealCreationError("Failed to record meal") from exc

    logger.info("meal_created", extra={"meal_id": meal_id, "household_id": household_id})
    return MealRecordOut(
        id=meal_id,
        menu_id=menu_id,
        date=date_ms,
        completed_at=date_ms,
        selections=built_selections,
        reviews=built_reviews,
    )
