"""Filesystem collaborators: the product catalog and the generated page store."""

from __future__ import annotations

import json
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Mapping

from pydantic import ValidationError

from .content.schema import AgentLogEntry, ProductRecord

__all__ = [
    "CatalogError",
    "ProductNotFoundError",
    "StorageError",
    "JsonProductRepository",
    "PageStore",
    "load_catalog",
]


class CatalogError(RuntimeError):
    """Raised when the product catalog cannot be read."""


class ProductNotFoundError(CatalogError):
    """Raised when a product id is not present in the catalog."""


class StorageError(RuntimeError):
    """Raised when generated content cannot be written."""


def load_catalog(path: Path | str, *, encoding: str = "utf-8") -> dict[str, ProductRecord]:
    """Read a JSON catalog (a list, or an object with a ``products`` list)."""

    source = Path(path).expanduser()
    try:
        payload = json.loads(source.read_text(encoding=encoding))
    except FileNotFoundError as exc:
        raise CatalogError(f"Catalog not found: {source}") from exc
    except (OSError, json.JSONDecodeError) as exc:
        raise CatalogError(f"Unable to read catalog {source}: {exc}") from exc

    entries = payload.get("products") if isinstance(payload, dict) else payload
    if not isinstance(entries, list):
        raise CatalogError(f"Catalog {source} must contain a list of products")

    products: dict[str, ProductRecord] = {}
    for entry in entries:
        try:
            product = ProductRecord.model_validate(entry)
        except ValidationError as exc:
            raise CatalogError(f"Invalid product entry in {source}: {exc}") from exc
        products[product.id] = product
    return products


class JsonProductRepository:
    """Product lookups backed by a JSON catalog file, re-read on every call."""

    def __init__(self, path: Path | str, *, encoding: str = "utf-8") -> None:
        self.path = Path(path).expanduser()
        self.encoding = encoding

    async def get(self, product_id: str) -> ProductRecord | None:
        return load_catalog(self.path, encoding=self.encoding).get(product_id)

    async def list_products(self) -> list[ProductRecord]:
        return list(load_catalog(self.path, encoding=self.encoding).values())


class PageStore:
    """Writes generated questions, pages, competitors and agent logs as JSON.

    Layout::

        <root>/comparison_products.json
        <root>/<product_id>/<generation_id>/questions.json
        <root>/<product_id>/<generation_id>/<page_type>.json
        <root>/<product_id>/<generation_id>/agent_logs.jsonl
    """

    COMPETITORS_FILENAME = "comparison_products.json"

    def __init__(self, root: Path | str, *, encoding: str = "utf-8") -> None:
        self.root = Path(root).expanduser()
        self.encoding = encoding
        self._lock = threading.Lock()

    def generation_dir(self, product_id: str, generation_id: str) -> Path:
        return self.root / _safe_segment(product_id) / _safe_segment(generation_id)

    def save_questions(self, product_id: str, generation_id: str, rows: Iterable[Mapping[str, Any]]) -> Path:
        target = self.generation_dir(product_id, generation_id) / "questions.json"
        payload = [
            {"product_id": product_id, "generation_id": generation_id, **dict(row)} for row in rows
        ]
        self._write_json(target, payload)
        return target

    def save_page(
        self,
        product_id: str,
        generation_id: str,
        page_type: str,
        content: Mapping[str, Any],
        agent_metadata: Mapping[str, Any] | None = None,
    ) -> Path:
        target = self.generation_dir(product_id, generation_id) / f"{_safe_segment(page_type)}.json"
        self._write_json(
            target,
            {
                "product_id": product_id,
                "generation_id": generation_id,
                "page_type": page_type,
                "content": dict(content),
                "agent_metadata": dict(agent_metadata or {}),
                "created_at": _now(),
            },
        )
        return target

    def upsert_competitor(self, product: ProductRecord) -> Path:
        target = self.root / self.COMPETITORS_FILENAME
        with self._lock:
            existing: dict[str, Any] = {}
            if target.exists():
                try:
                    existing = json.loads(target.read_text(encoding=self.encoding))
                except (OSError, json.JSONDecodeError) as exc:
                    raise StorageError(f"Unable to read {target}: {exc}") from exc
            existing[product.id] = product.model_dump(
                include={"id", "name", "concentration", "key_ingredients", "benefits", "price"}
            )
            self._write_json(target, existing)
        return target

    def append_agent_log(
        self,
        execution_id: str,
        generation_id: str,
        product_id: str,
        entry: AgentLogEntry,
    ) -> Path:
        target = self.generation_dir(product_id, generation_id) / "agent_logs.jsonl"
        record = {"execution_id": execution_id, "generation_id": generation_id, **entry.model_dump()}
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with target.open("a", encoding=self.encoding) as fh:
                fh.write(json.dumps(record, ensure_ascii=False) + "\n")
        except OSError as exc:
            raise StorageError(f"Unable to append agent log to {target}: {exc}") from exc
        return target

    def read_json(self, path: Path) -> Any:
        return json.loads(path.read_text(encoding=self.encoding))

    def _write_json(self, path: Path, payload: Any) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(payload, ensure_ascii=False, indent=2) + "\n", encoding=self.encoding)
        except OSError as exc:
            raise StorageError(f"Unable to write {path}: {exc}") from exc


def _safe_segment(value: str) -> str:
    safe = "".join(ch if ch.isalnum() or ch in {"-", "_", "."} else "_" for ch in value).strip("._")
    return safe or "item"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")
