import json
import logging

from kidsmenu.domain.migration.snapshot import LegacySnapshot, load_snapshot, read_json_file_safe


def test_missing_file_yields_empty_document(tmp_path, caplog) -> None:
    caplog.set_level(logging.WARNING)

    assert read_json_file_safe(tmp_path / "foods.json") == {}
    assert "foods.json not found" in caplog.text


def test_corrupt_file_yields_empty_document(tmp_path, caplog) -> None:
    caplog.set_level(logging.WARNING)
    path = tmp_path / "menus.json"
    path.write_text("{not json", encoding="utf-8")

    assert read_json_file_safe(path) == {}
    assert "Failed to parse menus.json" in caplog.text


def test_non_object_file_yields_empty_document(tmp_path) -> None:
    path = tmp_path / "meals.json"
    path.write_text("[1, 2, 3]", encoding="utf-8")

    assert read_json_file_safe(path) == {}


def test_load_snapshot_reads_every_file(tmp_path) -> None:
    (tmp_path / "foods.json").write_text(json.dumps({"items": [{"id": "f1", "name": "Chicken"}]}), encoding="utf-8")
    (tmp_path / "menus.json").write_text(
        json.dumps({"menus": [{"id": "m1"}], "activeMenuId": "m1", "selections": [{"kidId": "k1"}]}),
        encoding="utf-8",
    )
    (tmp_path / "shared-menus.json").write_text(
        json.dumps({"menus": [{"id": "s1"}], "responses": [{"id": "r1"}]}), encoding="utf-8"
    )

    snapshot = load_snapshot(tmp_path)

    assert [food["id"] for food in snapshot.foods] == ["f1"]
    assert snapshot.profiles == []
    assert snapshot.meals == []
    assert snapshot.active_menu_id == "m1"
    assert snapshot.selections == [{"kidId": "k1"}]
    assert [menu["id"] for menu in snapshot.shared_menus] == ["s1"]
    assert [response["id"] for response in snapshot.shared_responses] == ["r1"]


def test_from_documents_drops_malformed_entries(caplog) -> None:
    caplog.set_level(logging.WARNING)

    snapshot = LegacySnapshot.from_documents(
        foods={"items": [{"id": "f1"}, "oops", None]},
        profiles={"profiles": {"id": "k1"}},
    )

    assert snapshot.foods == [{"id": "f1"}]
    assert snapshot.profiles == []
    assert snapshot.active_menu_id is None
    assert "skipped 2 malformed 'items' entries" in caplog.text
    assert "'profiles' is not a list" in caplog.text
