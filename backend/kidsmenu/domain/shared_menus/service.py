from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping

from sqlalchemy import insert, select
from sqlalchemy.ext.asyncio import AsyncConnection

from ...core.logging import get_logger
from ...db.models.shared_menu import SharedMenu, SharedMenuResponse
from ..errors import SharedMenuNotFoundError
from ..meals.rehydrator import to_epoch_ms
from ..migration.normalizer import normalize_shared_menu, normalize_shared_response
from ..schemas import SharedMenuOut, SharedMenuResponseOut
from ..tokens import InsertAttempt, Issued, issue_token, try_insert

logger = get_logger(__name__)

shared_menus = SharedMenu.__table__
shared_menu_responses = SharedMenuResponse.__table__

_MENU_COLUMNS = (
    shared_menus.c.id,
    shared_menus.c.token,
    shared_menus.c.title,
    shared_menus.c.description,
    shared_menus.c.groups,
    shared_menus.c.is_active,
    shared_menus.c.created_at,
)
_RESPONSE_COLUMNS = (
    shared_menu_responses.c.id,
    shared_menu_responses.c.menu_id,
    shared_menu_responses.c.respondent_name,
    shared_menu_responses.c.selections,
    shared_menu_responses.c.created_at,
)


def _row_to_shared_menu(row: Mapping[str, Any]) -> SharedMenuOut:
    return SharedMenuOut(
        id=row["id"],
        token=row["token"],
        title=row["title"],
        description=row["description"],
        groups=row["groups"] or [],
        is_active=row["is_active"],
        created_at=to_epoch_ms(row["created_at"]) or 0,
    )


def _row_to_response(row: Mapping[str, Any]) -> SharedMenuResponseOut:
    return SharedMenuResponseOut(
        id=row["id"],
        menu_id=row["menu_id"],
        respondent_name=row["respondent_name"],
        selections=row["selections"] or {},
        timestamp=to_epoch_ms(row["created_at"]) or 0,
    )


async def insert_shared_menu(conn: AsyncConnection, values: Mapping[str, Any], *, first_token: str | None = None) -> Issued:
    """Insert a shared menu row under a fresh unique token; ``Issued.value`` is the new row id.

    ``first_token`` is tried before any generated candidate so imported menus keep their
    public links when the token is still free.
    """

    async def attempt(token: str) -> InsertAttempt:
        stmt = insert(shared_menus).values(**values, token=token).returning(shared_menus.c.id)
        return await try_insert(conn, token, stmt)

    return await issue_token(attempt, first_candidate=first_token)


async def create_shared_menu(
    conn: AsyncConnection,
    household_id: str,
    title: str,
    description: str | None,
    groups: list[Mapping[str, Any]],
) -> SharedMenuOut:
    doc = normalize_shared_menu({"title": title, "description": description, "groups": groups})
    issued = await insert_shared_menu(
        conn,
        {
            "household_id": household_id,
            "title": doc["title"],
            "description": doc.get("description"),
            "groups": doc["groups"],
        },
    )
    logger.info("shared_menu_created", extra={"shared_menu_id": issued.value, "household_id": household_id})
    result = await conn.execute(select(*_MENU_COLUMNS).where(shared_menus.c.id == issued.value))
    return _row_to_shared_menu(result.mappings().one())


async def get_shared_menu_by_token(conn: AsyncConnection, token: str) -> SharedMenuOut | None:
    result = await conn.execute(
        select(*_MENU_COLUMNS).where(shared_menus.c.token == token, shared_menus.c.is_active.is_(True))
    )
    row = result.mappings().first()
    return _row_to_shared_menu(row) if row else None


async def get_responses(conn: AsyncConnection, menu_id: str) -> list[SharedMenuResponseOut]:
    result = await conn.execute(
        select(*_RESPONSE_COLUMNS)
        .where(shared_menu_responses.c.menu_id == menu_id)
        .order_by(shared_menu_responses.c.created_at, shared_menu_responses.c.id)
    )
    return [_row_to_response(row) for row in result.mappings()]


async def submit_response(
    conn: AsyncConnection,
    token: str,
    respondent_name: str,
    selections: Mapping[str, list[str]],
    *,
    submitted_at: datetime | None = None,
) -> tuple[SharedMenuOut, SharedMenuResponseOut]:
    menu = await get_shared_menu_by_token(conn, token)
    if menu is None:
        raise SharedMenuNotFoundError(f"No active shared menu for token {token}")

    doc = normalize_shared_response({"respondentName": respondent_name, "selections": selections})
    values: dict[str, Any] = {
        "menu_id": menu.id,
        "respondent_name": doc["respondentName"],
        "selections": doc["selections"],
    }
    if submitted_at is not None:
        values["created_at"] = submitted_at
    result = await conn.execute(insert(shared_menu_responses).values(**values).returning(*_RESPONSE_COLUMNS))
    return menu, _row_to_response(result.mappings().one())
