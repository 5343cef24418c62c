from datetime import datetime, timezone
from itertools import count

import pytest
import pytest_asyncio
from sqlalchemy import insert, update

from kidsmenu.db.models.household import Household
from kidsmenu.db.models.shared_menu import SharedMenu
from kidsmenu.domain import tokens
from kidsmenu.domain.errors import SharedMenuNotFoundError, TokenGenerationError
from kidsmenu.domain.shared_menus.service import (
    create_shared_menu,
    get_responses,
    get_shared_menu_by_token,
    submit_response,
)

HOUSEHOLD = "household-1"
GROUPS = [
    {
        "id": "g1",
        "label": "Dessert",
        "options": [{"id": "o1", "text": "Cake", "imageUrl": None, "order": 0}],
        "selectionPreset": "pick-1",
        "order": 0,
    }
]


@pytest_asyncio.fixture
async def household(engine):
    async with engine.begin() as conn:
        await conn.execute(insert(Household).values(id=HOUSEHOLD, name="Test family"))
    return HOUSEHOLD


def _scripted_tokens(monkeypatch, *values: str) -> None:
    seq = iter(values)
    monkeypatch.setattr(tokens, "generate_token", lambda: next(seq))


@pytest.mark.asyncio
async def test_create_and_fetch_by_token(engine, household) -> None:
    async with engine.begin() as conn:
        created = await create_shared_menu(conn, household, "Birthday", "", GROUPS)
        fetched = await get_shared_menu_by_token(conn, created.token)

    assert fetched == created
    assert created.description is None
    assert created.is_active is True
    assert created.groups[0].options[0].text == "Cake"
    assert len(created.token) == tokens.TOKEN_LENGTH


@pytest.mark.asyncio
async def test_token_collision_retries_with_new_candidate(engine, household, monkeypatch) -> None:
    _scripted_tokens(monkeypatch, "dup00001", "dup00001", "new00002")

    async with engine.begin() as conn:
        first = await create_shared_menu(conn, household, "First", None, GROUPS)
        second = await create_shared_menu(conn, household, "Second", None, GROUPS)

    assert first.token == "dup00001"
    assert second.token == "new00002"


@pytest.mark.asyncio
async def test_token_exhaustion_raises(engine, household, monkeypatch) -> None:
    calls = count(1)

    def same_token() -> str:
        next(calls)
        return "same0000"

    monkeypatch.setattr(tokens, "generate_token", same_token)

    async with engine.begin() as conn:
        await create_shared_menu(conn, household, "First", None, GROUPS)
        with pytest.raises(TokenGenerationError):
            await create_shared_menu(conn, household, "Second", None, GROUPS)

    assert next(calls) == 2 + tokens.MAX_TOKEN_ATTEMPTS


@pytest.mark.asyncio
async def test_submit_response_and_list(engine, household) -> None:
    submitted_at = datetime(2024, 6, 1, 9, 0, tzinfo=timezone.utc)
    async with engine.begin() as conn:
        menu = await create_shared_menu(conn, household, "Picnic", "Bring a hat", GROUPS)
        returned_menu, response = await submit_response(
            conn, menu.token, "Grandma", {"g1": ["o1"]}, submitted_at=submitted_at
        )
        responses = await get_responses(conn, menu.id)

    assert returned_menu.id == menu.id
    assert response.menu_id == menu.id
    assert response.respondent_name == "Grandma"
    assert response.timestamp == 1717232400000
    assert responses == [response]
    assert response.model_dump(by_alias=True)["respondentName"] == "Grandma"


@pytest.mark.asyncio
async def test_submit_to_unknown_or_inactive_menu_fails(engine, household) -> None:
    async with engine.begin() as conn:
        menu = await create_shared_menu(conn, household, "Closed", None, GROUPS)
        await conn.execute(update(SharedMenu).where(SharedMenu.id == menu.id).values(is_active=False))

        assert await get_shared_menu_by_token(conn, menu.token) is None
        with pytest.raises(SharedMenuNotFoundError):
            await submit_response(conn, menu.token, "Grandpa", {})
        with pytest.raises(SharedMenuNotFoundError):
            await submit_response(conn, "nope0000", "Grandpa", {})
