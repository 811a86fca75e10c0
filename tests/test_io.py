from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from pagegraph.content.schema import AgentLogEntry, ProductRecord
from pagegraph.io import CatalogError, JsonProductRepository, PageStore, StorageError, load_catalog


def test_load_catalog_accepts_wrapped_and_bare_lists(tmp_path: Path, product: ProductRecord) -> None:
    wrapped = tmp_path / "wrapped.json"
    wrapped.write_text(json.dumps({"products": [product.model_dump()]}), encoding="utf-8")
    bare = tmp_path / "bare.json"
    bare.write_text(json.dumps([{"id": "p2", "name": "Toner", "benefits": "Hydrating, Soothing", "price": 299}]))

    assert load_catalog(wrapped) == {"prod-1": product}
    toner = load_catalog(bare)["p2"]
    assert toner.benefits == ["Hydrating", "Soothing"]
    assert toner.price == "299"


def test_load_catalog_errors(tmp_path: Path) -> None:
    with pytest.raises(CatalogError, match="Catalog not found"):
        load_catalog(tmp_path / "missing.json")

    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    with pytest.raises(CatalogError, match="Unable to read catalog"):
        load_catalog(broken)

    shapeless = tmp_path / "shapeless.json"
    shapeless.write_text(json.dumps({"items": []}), encoding="utf-8")
    with pytest.raises(CatalogError, match="must contain a list"):
        load_catalog(shapeless)

    invalid = tmp_path / "invalid.json"
    invalid.write_text(json.dumps([{"name": "No id"}]), encoding="utf-8")
    with pytest.raises(CatalogError, match="Invalid product entry"):
        load_catalog(invalid)


def test_repository_lookups(catalog_path: Path, product: ProductRecord) -> None:
    repository = JsonProductRepository(catalog_path)

    assert asyncio.run(repository.get("prod-1")) == product
    assert asyncio.run(repository.get("unknown")) is None
    assert [item.id for item in asyncio.run(repository.list_products())] == ["prod-1"]


def test_page_store_layout(tmp_path: Path) -> None:
    store = PageStore(tmp_path)

    questions = store.save_questions("prod-1", "gen-1", [{"question": "Q?", "answer": None}])
    page = store.save_page("prod-1", "gen-1", "faq", {"title": "FAQ"}, {"execution_id": "exec-1"})

    assert questions == tmp_path / "prod-1" / "gen-1" / "questions.json"
    assert store.read_json(questions) == [
        {"product_id": "prod-1", "generation_id": "gen-1", "question": "Q?", "answer": None}
    ]
    saved = store.read_json(page)
    assert saved["page_type"] == "faq"
    assert saved["content"] == {"title": "FAQ"}
    assert saved["agent_metadata"] == {"execution_id": "exec-1"}
    assert "created_at" in saved


def test_page_store_sanitises_path_segments(tmp_path: Path) -> None:
    store = PageStore(tmp_path)

    assert store.generation_dir("../etc", "a/b") == tmp_path / "etc" / "a_b"


def test_upsert_competitor_replaces_by_id(tmp_path: Path, product: ProductRecord) -> None:
    store = PageStore(tmp_path)
    store.upsert_competitor(product.model_copy(update={"id": "c1", "name": "First"}))
    store.upsert_competitor(product.model_copy(update={"id": "c2", "name": "Second"}))
    target = store.upsert_competitor(product.model_copy(update={"id": "c1", "name": "Renamed"}))

    saved = store.read_json(target)
    assert sorted(saved) == ["c1", "c2"]
    assert saved["c1"]["name"] == "Renamed"
    assert set(saved["c1"]) == {"id", "name", "concentration", "key_ingredients", "benefits", "price"}


def test_upsert_competitor_rejects_corrupt_file(tmp_path: Path, product: ProductRecord) -> None:
    (tmp_path / PageStore.COMPETITORS_FILENAME).write_text("garbage", encoding="utf-8")

    with pytest.raises(StorageError):
        PageStore(tmp_path).upsert_competitor(product)


def test_append_agent_log_writes_json_lines(tmp_path: Path) -> None:
    store = PageStore(tmp_path)
    entry = AgentLogEntry(agent_name="DataParserAgent", role="Data Validation & Normalization", tokens_used=4)

    store.append_agent_log("exec-1", "gen-1", "prod-1", entry)
    target = store.append_agent_log("exec-1", "gen-1", "prod-1", entry.model_copy(update={"status": "error"}))

    lines = [json.loads(line) for line in target.read_text(encoding="utf-8").splitlines()]
    assert [line["status"] for line in lines] == ["success", "error"]
    assert lines[0]["execution_id"] == "exec-1"
    assert lines[0]["agent_name"] == "DataParserAgent"
