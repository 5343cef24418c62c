from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Serializes to the camelCase shape the web client already consumes."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MealSelectionOut(CamelModel):
    kid_id: str | None = None
    kid_name: str
    selections: dict[str, list[str]] = Field(default_factory=dict)
    timestamp: int


class MealReviewOut(CamelModel):
    kid_id: str | None = None
    kid_name: str
    completions: dict[str, str | None] = Field(default_factory=dict)
    earned_star: bool = False


class MealRecordOut(CamelModel):
    id: str
    menu_id: str | None = None
    date: int
    completed_at: int
    selections: list[MealSelectionOut] = Field(default_factory=list)
    reviews: list[MealReviewOut] = Field(default_factory=list)


class SharedMenuOptionOut(CamelModel):
    id: str
    text: str = ""
    image_url: str | None = None
    order: int = 0


class SharedMenuGroupOut(CamelModel):
    id: str
    label: str = ""
    options: list[SharedMenuOptionOut] = Field(default_factory=list)
    selection_preset: str = "pick-1"
    order: int = 0


class SharedMenuOut(CamelModel):
    id: str
    token: str
    title: str
    description: str | None = None
    groups: list[SharedMenuGroupOut] = Field(default_factory=list)
    is_active: bool
    created_at: int


class SharedMenuResponseOut(CamelModel):
    id: str
    menu_id: str
    respondent_name: str
    selections: dict[str, list[str]] = Field(default_factory=dict)
    timestamp: int


class TableCount(BaseModel):
    table: str
    expected: int
    actual: int

    @property
    def ok(self) -> bool:
        return self.expected == self.actual

    def format_line(self) -> str:
        mark = "✓" if self.ok else "✗"
        return f"{mark}  {self.table}: {self.actual} rows (expected {self.expected})"


class MigrationReport(BaseModel):
    tables: list[TableCount] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    dangling_food_ids: list[str] = Field(default_factory=list)

    @property
    def counts(self) -> dict[str, int]:
        return {entry.table: entry.actual for entry in self.tables}

    @property
    def mismatches(self) -> list[TableCount]:
        return [entry for entry in self.tables if not entry.ok]

    def format_lines(self) -> list[str]:
        lines = ["--- Verification ---"]
        lines.extend(entry.format_line() for entry in self.tables)
        if self.dangling_food_ids:
            lines.append(f"⚠  {len(self.dangling_food_ids)} food reference(s) kept without a mapping")
        if self.warnings:
            lines.append(f"⚠  {len(self.warnings)} warning(s) during import")
        return lines
