"""Command line interface for the product content graph."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import replace
from typing import Sequence

from dotenv import load_dotenv

from .config import PageGraphConfig
from .content.orchestrator import build_orchestrator
from .content.workflow import create_content_graph
from .io import CatalogError, JsonProductRepository, PageStore
from .llm.client import ChatClient
from .llm.providers import ProviderError, build_provider

__all__ = ["main", "build_parser"]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pagegraph",
        description="Generate FAQ, product and comparison pages for catalog products.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
        allow_abbrev=False,
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity.",
    )
    parser.add_argument(
        "--env-file",
        default=None,
        help="Optional .env file to load before reading configuration.",
    )
    subparsers = parser.add_subparsers(dest="command")

    generate = subparsers.add_parser(
        "generate",
        help="Run the content graph for one product.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
        allow_abbrev=False,
    )
    generate.add_argument("--product-id", required=True, help="Catalog id of the product.")
    _register_catalog_argument(generate)
    generate.add_argument("--output", default=None, help="Directory where generated pages are written.")
    generate.add_argument("--model", default=None, help="Model used by most steps.")
    generate.add_argument("--fast-model", dest="fast_model", default=None, help="Model used for answers.")
    generate.add_argument("--timeout", type=float, default=None, help="Caller-side deadline in seconds.")
    generate.add_argument("--max-iterations", dest="max_iterations", type=int, default=None)
    generate.add_argument("--skip-faq", action="store_true", help="Do not build the FAQ page.")
    generate.add_argument("--skip-product", action="store_true", help="Do not build the product page.")
    generate.add_argument("--skip-comparison", action="store_true", help="Do not build the comparison page.")
    generate.add_argument("--validate", action="store_true", help="Validate the graph structure on compile.")

    products = subparsers.add_parser(
        "products",
        help="List catalog products.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
        allow_abbrev=False,
    )
    _register_catalog_argument(products)

    subparsers.add_parser("graph", help="Print the content graph structure as JSON.", allow_abbrev=False)
    return parser


def _register_catalog_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--catalog", default=None, help="Path to the JSON product catalog.")


def _build_config(args: argparse.Namespace) -> PageGraphConfig:
    config = PageGraphConfig().with_paths(
        catalog_path=getattr(args, "catalog", None),
        output_path=getattr(args, "output", None),
    )
    llm_overrides = {
        key: value
        for key, value in (("model", getattr(args, "model", None)), ("fast_model", getattr(args, "fast_model", None)))
        if value
    }
    if llm_overrides:
        config.llm = replace(config.llm, **llm_overrides)
    graph_overrides: dict[str, object] = {}
    if getattr(args, "timeout", None) is not None:
        graph_overrides["timeout_seconds"] = args.timeout
    if getattr(args, "max_iterations", None) is not None:
        graph_overrides["max_iterations"] = args.max_iterations
    if getattr(args, "validate", False):
        graph_overrides["validate"] = True
    if graph_overrides:
        config.graph = replace(config.graph, **graph_overrides)
    return config


def _run_generate(args: argparse.Namespace) -> int:
    config = _build_config(args).ensure_directories()
    orchestrator = build_orchestrator(config)
    outcome = asyncio.run(
        orchestrator.generate(
            args.product_id,
            should_generate_faq=not args.skip_faq,
            should_generate_product=not args.skip_product,
            should_generate_comparison=not args.skip_comparison,
        )
    )
    print(json.dumps(outcome.to_dict(), indent=2, ensure_ascii=False))
    return 0 if outcome.success else 1


def _run_products(args: argparse.Namespace) -> int:
    config = _build_config(args)
    products = asyncio.run(JsonProductRepository(config.catalog_path).list_products())
    for product in products:
        print(f"{product.id}\t{product.name}\t{product.price}")
    return 0


def _run_graph(args: argparse.Namespace) -> int:
    config = PageGraphConfig()
    # describing the graph never calls the model
    client = ChatClient(build_provider(**config.llm.provider_kwargs(api_key="unused")))
    graph = create_content_graph(client, PageStore(config.paths.output_path), config=config.graph, llm=config.llm)
    print(json.dumps(graph.describe(), indent=2))
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.env_file:
        load_dotenv(args.env_file)
    else:
        load_dotenv()
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    runners = {
        "generate": _run_generate,
        "products": _run_products,
        "graph": _run_graph,
    }
    runner = runners.get(args.command)
    if runner is None:
        parser.print_help()
        return 0

    try:
        return runner(args)
    except (CatalogError, ProviderError, ValueError, RuntimeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
