"""命令行入口

Examples:
  swapsearch list --index myapp.search:posts_index
  swapsearch index --index myapp.search:posts_index --ids myapp.models:all_post_ids
  swapsearch update-alias --index myapp.search:posts_index --version 1700000000
  swapsearch drop --index myapp.search:posts_index --version 1690000000

索引和 id 来源以 ``模块:属性`` 形式给出；id 来源可以是可迭代对象或无参函数。
"""

from __future__ import annotations

import argparse
import importlib
import sys
from collections.abc import Sequence
from typing import Any

from swapsearch import admin
from swapsearch.config.settings import get_settings
from swapsearch.exceptions import SwapSearchError
from swapsearch.observability.logging import configure_logging
from swapsearch.search.index import Index


def load_object(path: str) -> Any:
    """按 ``module:attribute`` 导入对象"""
    module_name, _, attribute = path.partition(":")
    if not module_name or not attribute:
        raise argparse.ArgumentTypeError(f"expected module:attribute, got {path!r}")

    obj: Any = importlib.import_module(module_name)
    for part in attribute.split("."):
        obj = getattr(obj, part)
    return obj


def load_index(path: str) -> Index:
    obj = load_object(path)
    if not isinstance(obj, Index):
        raise argparse.ArgumentTypeError(f"{path} is not an Index")
    return obj


def load_ids(path: str) -> Any:
    obj = load_object(path)
    return obj() if callable(obj) else obj


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="swapsearch",
        description="Manage versioned Typesense collections behind aliases",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment Variables:
  SWAPSEARCH_URL       Typesense node URL (e.g. http://localhost:8108)
  SWAPSEARCH_API_KEY   Typesense API key
  SWAPSEARCH_ENV       Environment label appended to alias names
        """,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    list_parser = subparsers.add_parser("list", help="List versions of each index")
    list_parser.add_argument("--index", dest="indexes", action="append", type=load_index, required=True)

    index_parser = subparsers.add_parser("index", help="Create a new version and load records into it")
    index_parser.add_argument("--index", type=load_index, required=True)
    index_parser.add_argument("--ids", type=load_ids, required=True)
    index_parser.add_argument("--batch-size", type=int, default=None)

    alias_parser = subparsers.add_parser("update-alias", help="Point the alias at a version")
    alias_parser.add_argument("--index", type=load_index, required=True)
    alias_parser.add_argument("--version", required=True)

    drop_parser = subparsers.add_parser("drop", help="Delete a version")
    drop_parser.add_argument("--index", type=load_index, required=True)
    drop_parser.add_argument("--version", required=True)
    drop_parser.add_argument("--force", action="store_true", help="Allow dropping the aliased version")

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    settings = get_settings()
    configure_logging(settings.env, settings.log_level, settings.log_format)

    try:
        if args.command == "list":
            admin.list_indexes(args.indexes, output=sys.stdout)
        elif args.command == "index":
            failures = admin.index_records(args.index, args.ids, output=sys.stdout, batch_size=args.batch_size)
            return 1 if failures else 0
        elif args.command == "update-alias":
            return 0 if admin.update_alias(args.index, args.version, output=sys.stdout) else 1
        elif args.command == "drop":
            admin.drop_version(args.index, args.version, output=sys.stdout, force=args.force)
    except SwapSearchError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
