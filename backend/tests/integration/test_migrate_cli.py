import importlib.util
import json
from pathlib import Path

import pytest

SCRIPT = Path(__file__).resolve().parents[3] / "scripts" / "migrate_json_to_db.py"


def _load_script():
    spec = importlib.util.spec_from_file_location("migrate_json_to_db", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_parse_args_defaults() -> None:
    args = _load_script().parse_args([])

    assert args.data_dir is None
    assert args.database_url is None
    assert args.create_schema is False


@pytest.mark.asyncio
async def test_cli_imports_data_directory(tmp_path, capsys) -> None:
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    (data_dir / "foods.json").write_text(
        json.dumps({"items": [{"id": "f1", "name": "Chicken", "category": "main"}]}), encoding="utf-8"
    )
    (data_dir / "profiles.json").write_text(
        json.dumps({"profiles": [{"id": "k1", "name": "Ava", "avatarColor": "pink"}]}), encoding="utf-8"
    )

    exit_code = await _load_script().main(
        [
            "--data-dir",
            str(data_dir),
            "--database-url",
            f"sqlite+aiosqlite:///{tmp_path / 'kidsmenu.db'}",
            "--household-name",
            "CLI family",
            "--create-schema",
        ]
    )

    out = capsys.readouterr().out
    assert exit_code == 0
    assert "✓  food_items: 1 rows (expected 1)" in out
    assert "✓  kid_profiles: 1 rows (expected 1)" in out
    assert "✓ Migration complete!" in out
