#!/usr/bin/env python3
"""
Folio Catalog - Command Line

Usage:
    python3 main.py import stores.csv --collection c-1 --user u-1 --user-name "Ana Lee" [--out stores.json]
    python3 main.py filter collection.json --search coffee --tag vegan --price mid --field "Vibe=Minimal"
    python3 main.py classify '$$$'
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Dict, List

from catalog import (
    Collection,
    FieldSchema,
    FilterState,
    StoreContext,
    StoreProcessor,
    classify_price,
    filter_and_sort,
    parse_tabular,
)
from catalog.config import CatalogConfig

config = CatalogConfig.from_env()

# Setup logging
logging.basicConfig(
    level=getattr(logging, config.log_level, logging.INFO),
    format='%(asctime)s [%(levelname)s] %(message)s',
    datefmt='%H:%M:%S'
)
logger = logging.getLogger(__name__)


def _parse_field_filters(values: List[str]) -> Dict[str, List[str]]:
    fields: Dict[str, List[str]] = {}
    for value in values or []:
        if '=' not in value:
            raise argparse.ArgumentTypeError(f"--field expects NAME=OPTION, got {value!r}")
        name, option = value.split('=', 1)
        fields.setdefault(name.strip(), []).append(option.strip())
    return fields


def cmd_import(args) -> int:
    """Parse a CSV file and write normalized stores as JSON."""
    text = Path(args.file).read_text(encoding='utf-8')

    schema = FieldSchema()
    if args.template:
        collection = Collection.from_dict(json.loads(Path(args.template).read_text(encoding='utf-8')))
        schema = collection.field_schema

    result = parse_tabular(text, schema, max_rows=config.limits.max_stores_per_collection)
    if not result.ok:
        logger.error(f"Import failed: {result.error}")
        return 1

    for error in result.errors:
        logger.warning(f"Row {error.row}: {error.reason}")
    if result.truncated:
        logger.warning(f"{result.truncated_rows} rows past the store limit were not imported")

    context = StoreContext(collection_id=args.collection, user_id=args.user, user_name=args.user_name)
    processor = StoreProcessor()
    stores = [store.to_dict() for store in processor.transform_batch(result.records, context)]

    output = json.dumps(stores, ensure_ascii=False, indent=2)
    if args.out:
        Path(args.out).write_text(output, encoding='utf-8')
        logger.info(f"Wrote {len(stores)} stores to {args.out}")
    else:
        print(output)
    return 0


def cmd_filter(args) -> int:
    """Filter a collection snapshot and print matching store names."""
    collection = Collection.from_dict(json.loads(Path(args.file).read_text(encoding='utf-8')))
    filters = FilterState(
        search=args.search or '',
        tags=args.tag or [],
        on_sale=args.sale,
        price_ranges=args.price or [],
        custom_fields=_parse_field_filters(args.field),
    )
    stores = filter_and_sort(collection.stores, filters, view_archived=args.archived)
    for store in stores:
        print(store.store_name)
    logger.info(f"{len(stores)}/{len(collection.stores)} stores match")
    return 0


def cmd_classify(args) -> int:
    bucket = classify_price(args.price)
    print(bucket.value if bucket else "unclassified")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Folio catalog tools")
    sub = parser.add_subparsers(dest='command', required=True)

    p_import = sub.add_parser('import', help='Normalize a CSV import')
    p_import.add_argument('file')
    p_import.add_argument('--collection', required=True, help='Target collection id')
    p_import.add_argument('--user', required=True, help='Importing user id')
    p_import.add_argument('--user-name', default='')
    p_import.add_argument('--template', help='Collection JSON whose template defines custom fields')
    p_import.add_argument('--out', help='Write JSON here instead of stdout')
    p_import.set_defaults(func=cmd_import)

    p_filter = sub.add_parser('filter', help='Filter a collection snapshot')
    p_filter.add_argument('file')
    p_filter.add_argument('--search')
    p_filter.add_argument('--tag', action='append')
    p_filter.add_argument('--sale', action='store_true')
    p_filter.add_argument('--price', action='append', help='Bucket id: low, mid, high, ultra')
    p_filter.add_argument('--field', action='append', help='Custom field filter NAME=OPTION')
    p_filter.add_argument('--archived', action='store_true', help='Show archived stores')
    p_filter.set_defaults(func=cmd_filter)

    p_classify = sub.add_parser('classify', help='Classify price text')
    p_classify.add_argument('price')
    p_classify.set_defaults(func=cmd_classify)

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return args.func(args)
    except (OSError, json.JSONDecodeError, argparse.ArgumentTypeError) as e:
        logger.error(str(e))
        return 1


if __name__ == '__main__':
    sys.exit(main())
