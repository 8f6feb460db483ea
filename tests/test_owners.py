from __future__ import annotations

import json
from pathlib import Path

import pytest
from structlog.testing import capture_logs

from route_health.owners import OwnerTable
from route_health.settings import DEFAULT_OWNERS_PATH


def test_resolve_known_and_unknown_names() -> None:
    table = OwnerTable({"Router-A": "U123"})
    assert table.resolve("Router-A") == "U123"
    assert table.resolve("Router-Z") is None
    assert table.resolve(None) is None
    assert table.resolve("") is None


def test_owner_table_is_read_only() -> None:
    source = {"Router-A": "U123"}
    table = OwnerTable(source)
    source["Router-B"] = "U456"
    assert table.resolve("Router-B") is None
    with pytest.raises(TypeError):
        table.owners["Router-C"] = "U789"  # type: ignore[index]


def test_load_json(tmp_path: Path) -> None:
    p = tmp_path / "owners.json"
    p.write_text(json.dumps({"Router-A": "U123", "Nairobi 2": " U999 "}), encoding="utf-8")
    table = OwnerTable.load(p)
    assert len(table) == 2
    assert table.resolve("Nairobi 2") == "U999"


def test_load_yaml(tmp_path: Path) -> None:
    p = tmp_path / "owners.yaml"
    p.write_text("Router-A: U123\nRouter-B: U456\n", encoding="utf-8")
    assert OwnerTable.load(p).resolve("Router-B") == "U456"


def test_missing_file_yields_empty_table(tmp_path: Path) -> None:
    with capture_logs() as logs:
        table = OwnerTable.load(tmp_path / "nope.json")
    assert len(table) == 0
    assert any(entry["log_level"] == "warning" for entry in logs)


@pytest.mark.parametrize("content", ['["Router-A"]', '{"Router-A": 123}', '{"Router-A": ""}'])
def test_malformed_file_is_rejected(tmp_path: Path, content: str) -> None:
    p = tmp_path / "owners.json"
    p.write_text(content, encoding="utf-8")
    with pytest.raises(ValueError):
        OwnerTable.load(p)


def test_packaged_default_table_loads() -> None:
    assert len(OwnerTable.load(DEFAULT_OWNERS_PATH)) == 0
