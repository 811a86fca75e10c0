"""Path helpers for the product catalog and generated output."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path

__all__ = [
    "DEFAULT_CATALOG_PATH",
    "DEFAULT_OUTPUT_ROOT",
    "PagePathConfig",
    "resolve_catalog_path",
    "resolve_output_path",
]

DEFAULT_CATALOG_PATH = Path(os.getenv("PAGEGRAPH_CATALOG", "data/products.json"))
DEFAULT_OUTPUT_ROOT = Path(os.getenv("PAGEGRAPH_OUTPUT_ROOT", "outputs")) / "pages"


def _normalise(path: Path | str) -> Path:
    return Path(path).expanduser()


def resolve_catalog_path(path: Path | str | None = None) -> Path:
    return _normalise(path or DEFAULT_CATALOG_PATH)


def resolve_output_path(path: Path | str | None = None, *, create: bool = True) -> Path:
    candidate = _normalise(path or DEFAULT_OUTPUT_ROOT)
    if create:
        candidate.mkdir(parents=True, exist_ok=True)
    return candidate


@dataclass(slots=True)
class PagePathConfig:
    """Where products are read from and where generated pages are written."""

    catalog_path: Path = DEFAULT_CATALOG_PATH
    output_path: Path = DEFAULT_OUTPUT_ROOT
    create_output: bool = True

    def expanded(self) -> "PagePathConfig":
        return replace(
            self,
            catalog_path=_normalise(self.catalog_path),
            output_path=_normalise(self.output_path),
        )

    def ensure(self) -> "PagePathConfig":
        resolved = self.expanded()
        if self.create_output:
            resolved.output_path.mkdir(parents=True, exist_ok=True)
        return resolved
