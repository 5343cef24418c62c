"""One-shot import of the legacy JSON snapshot into the relational schema.

The whole import runs in a single transaction that starts by emptying every
target table, so re-running it against the same snapshot always ends in the
same state. Before committing, every table's row count is checked against the
number of rows this run inserted; any divergence rolls everything back.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Table, delete, func, insert, select, text, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from ...core.config import settings
from ...core.logging import get_logger
from ...db.models.food import FoodItem
from ...db.models.household import Household
from ...db.models.meal import MealRecord, MealReview, MealSelection
from ...db.models.menu import KidSelection, Menu, PresetSlot
from ...db.models.profile import KidProfile
from ...db.models.shared_menu import SharedMenu, SharedMenuResponse
from ..errors import MigrationError, TokenGenerationError
from ..meals.rehydrator import UNKNOWN_KID_NAME
from ..schemas import MigrationReport, TableCount
from ..shared_menus.service import insert_shared_menu
from .normalizer import (
    drops_main_completion,
    normalize_food,
    normalize_meal,
    normalize_menu,
    normalize_profile,
    normalize_selection,
    normalize_shared_menu,
    normalize_shared_response,
)
from .remapper import EntityType, IdRemapper
from .snapshot import LegacySnapshot

logger = get_logger(__name__)

households = Household.__table__
food_items = FoodItem.__table__
kid_profiles = KidProfile.__table__
menus = Menu.__table__
kid_selections = KidSelection.__table__
meal_records = MealRecord.__table__
meal_selections = MealSelection.__table__
meal_reviews = MealReview.__table__
shared_menus = SharedMenu.__table__
shared_menu_responses = SharedMenuResponse.__table__

# Dependency order: parents first.
TABLES: tuple[Table, ...] = (
    households,
    food_items,
    kid_profiles,
    menus,
    kid_selections,
    meal_records,
    meal_selections,
    meal_reviews,
    shared_menus,
    shared_menu_responses,
)


def ms_to_datetime(value: Any) -> datetime | None:
    """Legacy epoch-millisecond timestamp to an aware datetime; ``0``/missing means unknown."""

    if value is None or isinstance(value, bool):
        return None
    try:
        millis = float(value)
    except (TypeError, ValueError):
        return None
    if millis == 0:
        return None
    try:
        return datetime.fromtimestamp(millis / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        logger.warning("Timestamp %r is out of range, using the default", value)
        return None


class MigrationLoader:
    """Loads one snapshot through one open connection.

    Holds the per-run id remapper and the inserted-row counters; a new loader is
    built for every ``migrate()`` call.
    """

    def __init__(
        self,
        conn: AsyncConnection,
        snapshot: LegacySnapshot,
        *,
        household_id: str,
        household_name: str,
        now: datetime | None = None,
    ) -> None:
        self.conn = conn
        self.snapshot = snapshot
        self.household_id = household_id
        self.household_name = household_name
        self.now = now or datetime.now(timezone.utc)
        self.remapper = IdRemapper()
        self.inserted: Counter[str] = Counter()
        self.warnings: list[str] = []
        self.kid_names: dict[str, str] = {}

    def warn(self, message: str, *args: Any) -> None:
        rendered = message % args if args else message
        logger.warning(rendered)
        self.warnings.append(rendered)

    async def _insert(self, table: Table, values: dict[str, Any]) -> str:
        """Insert one row and return its generated id."""

        result = await self.conn.execute(insert(table).values(**values).returning(table.c.id))
        new_id = result.scalar_one()
        self.inserted[table.name] += 1
        return new_id

    async def run(self) -> MigrationReport:
        await self.truncate()
        await self.load_household()
        await self.load_foods()
        await self.load_profiles()
        await self.load_menus()
        await self.load_kid_selections()
        await self.load_meals()
        await self.load_shared_menus()
        await self.load_shared_responses()
        return await self.verify()

    async def truncate(self) -> None:
        logger.info("Truncating existing data...")
        if self.conn.dialect.name == "postgresql":
            names = ", ".join(table.name for table in reversed(TABLES))
            await self.conn.execute(text(f"TRUNCATE {names} CASCADE"))
            return
        for table in reversed(TABLES):
            await self.conn.execute(delete(table))

    async def load_household(self) -> None:
        logger.info('Creating household "%s"...', self.household_name)
        await self._insert(households, {"id": self.household_id, "name": self.household_name})

    async def load_foods(self) -> None:
        logger.info("Migrating foods...")
        for raw in self.snapshot.foods:
            food = normalize_food(raw)
            new_id = await self._insert(
                food_items,
                {
                    "household_id": self.household_id,
                    "name": food.get("name") or "",
                    "image_url": food["imageUrl"],
                    "tags": food["tags"],
                    "legacy_id": _legacy_id(raw),
                },
            )
            self.remapper.record(EntityType.FOOD, _legacy_id(raw), new_id)
        logger.info("  %d foods migrated", self.inserted[food_items.name])

    async def load_profiles(self) -> None:
        logger.info("Migrating profiles...")
        for raw in self.snapshot.profiles:
            profile = normalize_profile(raw)
            name = profile.get("name") or ""
            new_id = await self._insert(
                kid_profiles,
                {
                    "household_id": self.household_id,
                    "name": name,
                    "avatar_color": profile["avatarColor"],
                    "avatar_animal": profile.get("avatarAnimal"),
                    "legacy_id": _legacy_id(raw),
                },
            )
            self.remapper.record(EntityType.PROFILE, _legacy_id(raw), new_id)
            if _legacy_id(raw) is not None:
                self.kid_names[_legacy_id(raw)] = name
        logger.info("  %d profiles migrated", self.inserted[kid_profiles.name])

    async def load_menus(self) -> None:
        logger.info("Migrating menus...")
        for raw in self.snapshot.menus:
            menu = normalize_menu(raw)
            created_at = ms_to_datetime(menu.get("createdAt")) or self.now
            updated_at = ms_to_datetime(menu.get("updatedAt")) or created_at
            new_id = await self._insert(
                menus,
                {
                    "household_id": self.household_id,
                    "name": menu.get("name") or "Menu",
                    "groups": self.remapper.groups(menu["groups"]),
                    "preset_slot": self._preset_slot(menu),
                    "legacy_id": _legacy_id(raw),
                    "created_at": created_at,
                    "updated_at": updated_at,
                },
            )
            self.remapper.record(EntityType.MENU, _legacy_id(raw), new_id)

        await self.apply_active_menu()
        logger.info("  %d menus migrated", self.inserted[menus.name])

    def _preset_slot(self, menu: dict[str, Any]) -> str | None:
        value = menu.get("presetSlot")
        if not value:
            return None
        try:
            return PresetSlot(value).value
        except ValueError:
            self.warn("Menu %s: unknown preset slot %r, dropped", menu.get("id"), value)
            return None

    async def apply_active_menu(self) -> None:
        legacy_active = self.snapshot.active_menu_id
        if not legacy_active:
            return
        new_active = self.remapper.get(EntityType.MENU, legacy_active)
        if new_active is None:
            self.warn("Active menu id %s not found in mapping", legacy_active)
            return
        await self.conn.execute(
            update(households).where(households.c.id == self.household_id).values(active_menu_id=new_active)
        )
        logger.info("  Active menu set")

    async def load_kid_selections(self) -> None:
        logger.info("Migrating kid selections...")
        # One live selection per kid: a later legacy entry replaces an earlier one.
        latest: dict[str, dict[str, Any]] = {}
        for raw in self.snapshot.selections:
            legacy_kid = _str_or_none(raw.get("kidId"))
            new_kid = self.remapper.get(EntityType.PROFILE, legacy_kid)
            if new_kid is None:
                self.warn("Kid id %s not found, skipping selection", legacy_kid)
                continue
            if new_kid in latest:
                self.warn("Duplicate selection for kid %s, keeping the latest", legacy_kid)
                del latest[new_kid]
            latest[new_kid] = normalize_selection(raw)

        for new_kid, selection in latest.items():
            await self._insert(
                kid_selections,
                {
                    "household_id": self.household_id,
                    "kid_id": new_kid,
                    "selections": self.remapper.selections(selection["selections"]),
                },
            )
        logger.info("  %d kid selections migrated", self.inserted[kid_selections.name])

    def _kid_ref(self, legacy_kid: str | None, what: str) -> tuple[str | None, str]:
        new_kid = self.remapper.get(EntityType.PROFILE, legacy_kid)
        if new_kid is None:
            self.warn("%s: kid %s not found, kid_id will be NULL", what, legacy_kid)
            return None, UNKNOWN_KID_NAME
        return new_kid, self.kid_names.get(legacy_kid, UNKNOWN_KID_NAME)

    async def load_meals(self) -> None:
        logger.info("Migrating meals...")
        for raw in self.snapshot.meals:
            meal = normalize_meal(raw)
            legacy_menu = _str_or_none(meal.get("menuId"))
            new_menu = self.remapper.get(EntityType.MENU, legacy_menu)
            if new_menu is None:
                self.warn("Meal %s: menu %s not found, menu_id will be NULL", _legacy_id(raw), legacy_menu)

            meal_date = ms_to_datetime(meal.get("date")) or self.now
            completed_at = ms_to_datetime(meal.get("completedAt")) or meal_date
            meal_id = await self._insert(
                meal_records,
                {
                    "household_id": self.household_id,
                    "menu_id": new_menu,
                    "date": meal_date,
                    "completed_at": completed_at,
                    "legacy_id": _legacy_id(raw),
                },
            )
            self.remapper.record(EntityType.MEAL, _legacy_id(raw), meal_id)

            for position, selection in enumerate(meal["selections"]):
                kid_id, kid_name = self._kid_ref(_str_or_none(selection.get("kidId")), "Meal selection")
                await self._insert(
                    meal_selections,
                    {
                        "meal_id": meal_id,
                        "kid_id": kid_id,
                        "kid_name": kid_name,
                        "selections": self.remapper.selections(selection["selections"]),
                        "position": position,
                    },
                )

            raw_reviews = [rev for rev in raw.get("reviews") or [] if isinstance(rev, dict)]
            for position, review in enumerate(meal["reviews"]):
                if position < len(raw_reviews) and drops_main_completion(raw_reviews[position]):
                    self.warn("Meal %s: legacy mainCompletion has no food id, dropped", _legacy_id(raw))
                kid_id, kid_name = self._kid_ref(_str_or_none(review.get("kidId")), "Meal review")
                await self._insert(
                    meal_reviews,
                    {
                        "meal_id": meal_id,
                        "kid_id": kid_id,
                        "kid_name": kid_name,
                        "completions": self.remapper.completions(review["completions"]),
                        "earned_star": review["earnedStar"],
                        "position": position,
                    },
                )
        logger.info(
            "  %d meals, %d meal selections, %d meal reviews migrated",
            self.inserted[meal_records.name],
            self.inserted[meal_selections.name],
            self.inserted[meal_reviews.name],
        )

    async def load_shared_menus(self) -> None:
        logger.info("Migrating shared menus...")
        for raw in self.snapshot.shared_menus:
            menu = normalize_shared_menu(raw)
            legacy_token = _str_or_none(menu.get("token"))
            try:
                issued = await insert_shared_menu(
                    self.conn,
                    {
                        "household_id": self.household_id,
                        "title": menu.get("title") or "",
                        "description": menu.get("description"),
                        "groups": menu["groups"],
                        "is_active": menu["isActive"],
                        "legacy_id": _legacy_id(raw),
                        "created_at": ms_to_datetime(menu.get("createdAt")) or self.now,
                    },
                    first_token=legacy_token,
                )
            except TokenGenerationError as exc:
                raise MigrationError(f"Shared menu {_legacy_id(raw)}: {exc}", table=shared_menus.name) from exc
            if legacy_token and issued.token != legacy_token:
                self.warn("Shared menu %s: token %s already taken, reissued as %s", _legacy_id(raw), legacy_token, issued.token)
            self.inserted[shared_menus.name] += 1
            self.remapper.record(EntityType.SHARED_MENU, _legacy_id(raw), issued.value)
        logger.info("  %d shared menus migrated", self.inserted[shared_menus.name])

    async def load_shared_responses(self) -> None:
        logger.info("Migrating shared menu responses...")
        for raw in self.snapshot.shared_responses:
            response = normalize_shared_response(raw)
            legacy_menu = _str_or_none(response.get("menuId"))
            new_menu = self.remapper.get(EntityType.SHARED_MENU, legacy_menu)
            if new_menu is None:
                self.warn("Shared response %s: menu %s not found, skipping", _legacy_id(raw), legacy_menu)
                continue
            await self._insert(
                shared_menu_responses,
                {
                    "menu_id": new_menu,
                    "respondent_name": response.get("respondentName") or "",
                    "selections": response["selections"],
                    "legacy_id": _legacy_id(raw),
                    "created_at": ms_to_datetime(response.get("timestamp")) or self.now,
                },
            )
        logger.info("  %d shared menu responses migrated", self.inserted[shared_menu_responses.name])

    async def verify(self) -> MigrationReport:
        entries: list[TableCount] = []
        for table in TABLES:
            result = await self.conn.execute(select(func.count()).select_from(table))
            entries.append(TableCount(table=table.name, expected=self.inserted[table.name], actual=result.scalar_one()))

        report = MigrationReport(
            tables=entries,
            warnings=list(self.warnings),
            dangling_food_ids=sorted({miss.old_id for miss in self.remapper.misses}),
        )
        for line in report.format_lines():
            logger.info(line)

        mismatches = report.mismatches
        if mismatches:
            first = mismatches[0]
            raise MigrationError.count_mismatch(first.table, first.expected, first.actual)
        return report


def _str_or_none(value: Any) -> str | None:
    return None if value is None else str(value)


def _legacy_id(doc: dict[str, Any]) -> str | None:
    return _str_or_none(doc.get("id"))


async def migrate(
    engine: AsyncEngine,
    snapshot: LegacySnapshot,
    *,
    household_id: str | None = None,
    household_name: str | None = None,
    loader_cls: type[MigrationLoader] = MigrationLoader,
) -> MigrationReport:
    """Replace the database contents with ``snapshot``; all or nothing.

    Must not run concurrently with live traffic on the same tables.
    """

    try:
        async with engine.begin() as conn:
            loader = loader_cls(
                conn,
                snapshot,
                household_id=household_id or settings.default_household_id,
                household_name=household_name or settings.household_name,
            )
            report = await loader.run()
    except MigrationError:
        logger.error("Migration FAILED, transaction rolled back")
        raise
    except SQLAlchemyError as exc:
        logger.exception("Migration FAILED, transaction rolled back")
        raise MigrationError(f"Migration failed: {exc}") from exc

    logger.info("Migration complete")
    return report
