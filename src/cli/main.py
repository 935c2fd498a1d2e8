"""Rackstore CLI entry points.
This module exposes catalog inspection and import/export commands.
It maps argparse commands onto SDK calls.
"""

from __future__ import annotations

import argparse
from dataclasses import replace
from pathlib import Path
from typing import Any, Sequence

from core.config import RackstoreConfig
from core.constants import SUPPORTED_BACKENDS
from core.errors import RackstoreError
from store.catalog_sdk import CatalogClient
from store.picture_index import build_disk_picture_index


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(prog="rackstore", description="Product and rack catalog CLI")
    parser.add_argument("--data-root", help="Override RACKSTORE_DATA_ROOT for this command")
    parser.add_argument(
        "--backend",
        choices=SUPPORTED_BACKENDS,
        help="Override RACKSTORE_BACKEND for this command",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("summary", help="Print catalog counts")
    subparsers.add_parser("categories", help="Print the category/make/model tree")
    _add_products_command(subparsers)
    subparsers.add_parser("racks", help="List racks and their line items")
    _add_document_command(subparsers, "export", "Export the catalog as JSON")
    _add_document_command(subparsers, "import", "Replace the catalog with a JSON document")
    _add_document_command(subparsers, "merge", "Merge a JSON document into the catalog")
    pictures_parser = subparsers.add_parser("pictures", help="Index a product pictures folder")
    pictures_parser.add_argument("root", help="Folder to scan")
    resolve_parser = subparsers.add_parser("resolve", help="Resolve an image reference")
    resolve_parser.add_argument("ref", help="Image reference, e.g. @pp/mixers/x32.png")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the rackstore CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        client = _build_client(args.data_root, args.backend)
        return _dispatch(client, args)
    except RackstoreError as error:
        print(f"error={error}")
        return 1


def _dispatch(client: CatalogClient, args: argparse.Namespace) -> int:
    if args.command == "summary":
        return _run_summary_command(client)
    if args.command == "categories":
        return _run_categories_command(client)
    if args.command == "products":
        return _run_products_command(client, args)
    if args.command == "racks":
        return _run_racks_command(client)
    if args.command == "export":
        print(client.export_to_file(args.path))
        return 0
    if args.command in ("import", "merge"):
        return _run_import_command(client, args)
    if args.command == "pictures":
        return _run_pictures_command(args)
    if args.command == "resolve":
        print(client.resolve_picture(args.ref) or "-")
        return 0
    raise RackstoreError(f"Unsupported command: {args.command}")


def _build_client(data_root: str | None, backend: str | None) -> CatalogClient:
    """Build SDK client with optional overrides.

    Args:
        data_root: Optional override path.
        backend: Optional backend name.

    Returns:
        Configured SDK client.
    """
    config = RackstoreConfig.from_env()
    if data_root:
        config = replace(config, data_root=Path(data_root).expanduser().resolve())
    if backend:
        config = replace(config, backend=backend)
    return CatalogClient(config)


def _run_summary_command(client: CatalogClient) -> int:
    state = client.state()
    print(f"schema_version={state.schema_version}")
    print(f"categories={len(state.categories)}")
    print(f"products={len(state.products)}")
    print(f"racks={len(state.racks)}")
    return 0


def _run_categories_command(client: CatalogClient) -> int:
    for category in client.list_categories():
        print(category)
        for make in client.list_makes(category):
            models = client.list_models(category, make)
            print(f"\t{make}\t{', '.join(models) or '-'}")
    return 0


def _run_products_command(client: CatalogClient, args: argparse.Namespace) -> int:
    products = client.list_products(args.category, args.make, args.model)
    for product in products:
        print(
            f"{product.id}\t"
            f"{product.category}/{product.make}/{product.model}\t"
            f"{product.name or '-'}\t"
            f"{product.rack_u if product.rack_u is not None else '-'}"
        )
    return 0


def _run_racks_command(client: CatalogClient) -> int:
    for rack in client.list_racks():
        print(f"{rack.id}\t{rack.name}\t{len(rack.items)}")
        for item in rack.items:
            product = client.get_product(item.product_id)
            print(f"\t{item.qty}x\t{product.name if product else item.product_id}")
    return 0


def _run_import_command(client: CatalogClient, args: argparse.Namespace) -> int:
    if args.command == "import":
        state = client.import_file(args.path)
    else:
        state = client.merge_file(args.path)
    print(f"products={len(state.products)}")
    print(f"racks={len(state.racks)}")
    return 0


def _run_pictures_command(args: argparse.Namespace) -> int:
    index = build_disk_picture_index(Path(args.root).expanduser())
    if index.error:
        print(f"error={index.error}")
        return 1
    for ref, picture in sorted(index.by_ref.items()):
        print(f"{ref}\t{picture.url}")
    return 0


def _add_products_command(subparsers: Any) -> None:
    """Register products subcommand."""
    parser = subparsers.add_parser("products", help="List products")
    parser.add_argument("--category", help="Category filter")
    parser.add_argument("--make", help="Make filter")
    parser.add_argument("--model", help="Model filter")


def _add_document_command(subparsers: Any, name: str, help_text: str) -> None:
    """Register a subcommand taking one document path."""
    parser = subparsers.add_parser(name, help=help_text)
    parser.add_argument("path", help="JSON document path")
