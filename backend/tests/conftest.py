from __future__ import annotations

from typing import Any, AsyncIterator

import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

from kidsmenu.db.base import Base
from kidsmenu.domain.migration.snapshot import LegacySnapshot


@pytest_asyncio.fixture
async def engine() -> AsyncIterator[AsyncEngine]:
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)

    # Let SQLAlchemy own BEGIN so savepoints and rollbacks behave like PostgreSQL.
    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection: Any, connection_record: Any) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


def legacy_documents() -> dict[str, dict[str, Any]]:
    """Legacy JSON files mixing old and current shapes, with a few broken references."""

    return {
        "foods": {
            "items": [
                {"id": "f1", "name": "Chicken", "imageUrl": None, "category": "main"},
                {"id": "f2", "name": "Fish", "imageUrl": "/uploads/fish.png", "category": "main"},
                {"id": "f3", "name": "Carrots", "imageUrl": "", "category": "side"},
                {"id": "f4", "name": "Rice", "imageUrl": None, "tags": ["Grain"]},
            ]
        },
        "profiles": {
            "profiles": [
                {"id": "k1", "name": "Ava", "avatarColor": "pink", "avatarAnimal": "cat"},
                {"id": "k2", "name": "Ben", "avatarColor": "blue"},
            ]
        },
        "menus": {
            "menus": [
                {
                    "id": "m1",
                    "name": "Dinner",
                    "mains": ["f1", "f2"],
                    "sides": ["f3"],
                    "createdAt": 1700000000000,
                    "updatedAt": 0,
                },
                {
                    "id": "m2",
                    "name": "Lunch",
                    "groups": [
                        {
                            "id": "g1",
                            "label": "Pick two",
                            "foodIds": ["f4", "f-missing"],
                            "selectionPreset": "pick-2",
                            "order": 0,
                        }
                    ],
                    "createdAt": 1700000100000,
                    "updatedAt": 1700000200000,
                    "presetSlot": "dinner",
                },
            ],
            "activeMenuId": "m1",
            "selections": [
                {"kidId": "k1", "mainId": "f1", "sideIds": ["f3"], "timestamp": 1},
                {"kidId": "k2", "selections": {"g1": ["f4"]}, "timestamp": 2},
                {"kidId": "k-ghost", "mainId": "f2", "timestamp": 3},
            ],
        },
        "meals": {
            "meals": [
                {
                    "id": "meal1",
                    "menuId": "m1",
                    "date": 1700000300000,
                    "completedAt": 1700000400000,
                    "selections": [
                        {"kidId": "k1", "mainId": "f1", "sideIds": ["f3"]},
                        {"kidId": "k2", "mainId": "f2", "sideIds": []},
                    ],
                    "reviews": [
                        {"kidId": "k1", "mainCompletion": "all", "sideCompletions": {"f3": "some"}, "earnedStar": True},
                    ],
                },
                {
                    "id": "meal2",
                    "menuId": "deleted-menu",
                    "date": 1700000500000,
                    "completedAt": 0,
                    "selections": [],
                    "reviews": [],
                },
            ]
        },
        "shared_menus": {
            "menus": [
                {
                    "id": "s1",
                    "token": "abcd1234",
                    "title": "Party snacks",
                    "groups": [
                        {
                            "id": "sg1",
                            "label": "Snacks",
                            "options": [{"id": "o1", "text": "Chips", "imageUrl": None, "order": 0}],
                            "selectionPreset": "pick-1",
                            "order": 0,
                        }
                    ],
                    "createdAt": 1700000600000,
                    "isActive": True,
                },
                {
                    "id": "s2",
                    "token": "abcd1234",
                    "title": "Copy of party snacks",
                    "description": "Same token as s1",
                    "groups": [],
                    "createdAt": 1700000700000,
                    "isActive": False,
                },
            ],
            "responses": [
                {
                    "id": "r1",
                    "menuId": "s1",
                    "respondentName": "Grandma",
                    "selections": {"sg1": ["o1"]},
                    "timestamp": 1700000800000,
                },
                {"id": "r2", "menuId": "s-missing", "respondentName": "Nobody", "selections": {}, "timestamp": 1},
            ],
        },
    }


EXPECTED_COUNTS = {
    "households": 1,
    "food_items": 4,
    "kid_profiles": 2,
    "menus": 2,
    "kid_selections": 2,
    "meal_records": 2,
    "meal_selections": 2,
    "meal_reviews": 1,
    "shared_menus": 2,
    "shared_menu_responses": 1,
}


@pytest.fixture
def snapshot() -> LegacySnapshot:
    return LegacySnapshot.from_documents(**legacy_documents())


@pytest.fixture
def expected_counts() -> dict[str, int]:
    return dict(EXPECTED_COUNTS)
