"""
Record Parser

Converts raw delimited text plus a FieldSchema into candidate store
records, collecting per-row problems instead of failing.

Behaviour:
- First row is the header; headers match canonical fields and template
  custom fields case- and whitespace-insensitively
- Unmatched headers are kept as extra custom fields (no data dropped)
- A row without a store name is rejected on its own; parsing continues
- Multi-value cells (tags, custom fields) split on ',' and de-duplicated
- Price cells pass through the price mapper
- Rows past the store cap are counted as truncated, not parsed

Parsing is resumable so large imports can be scheduled in batches:

    parser = RecordParser(text, schema)
    while not parser.parse_batch(200):
        yield_to_ui()
    result = parser.result

Example:
    >>> result = parse_tabular("name,tags\\nAcme,red,blue\\n,orphan",
    ...                        FieldSchema(columns=["name", "tags"]))
    >>> result.records[0]["tags"]
    ['red', 'blue']
    >>> result.errors[0].row
    2
"""

import csv
import io
import logging
from typing import Dict, Iterator, List, Optional, Tuple

from .config import ImportConfig, default_config
from .price_mapper import price_bucket_id
from .schema import (
    FieldSchema,
    MULTI_VALUE_FIELDS,
    ParseResult,
    PartialStore,
    RowError,
    header_key,
    resolve_field,
)
from .text_formatter import clean_name, normalize_tags

logger = logging.getLogger(__name__)

# Column kinds
FIELD = 'field'
CUSTOM = 'custom'

TRUE_VALUES = frozenset({'true', 'yes', 'y', '1', 'x', 'on'})


def parse_bool(value: str) -> bool:
    return value.strip().lower() in TRUE_VALUES


def parse_rating(value: str) -> float:
    """Parse a rating cell, clamped to [0, 5]. Unparseable -> 0."""
    try:
        rating = float(value.replace(',', '.'))
    except (TypeError, ValueError):
        return 0.0
    if rating != rating:  # NaN
        return 0.0
    return max(0.0, min(5.0, rating))


class RecordParser:
    """
    Resumable tabular parser for one input.

    The parser holds only per-input progress; final results are available
    from `result` once parsing has completed.
    """

    def __init__(
        self,
        text: Optional[str],
        schema: FieldSchema,
        max_rows: Optional[int] = None,
        config: Optional[ImportConfig] = None,
    ):
        if not isinstance(schema, FieldSchema):
            raise TypeError(f"schema must be a FieldSchema, got {type(schema).__name__}")

        self.schema = schema
        self.config = config or default_config.imports
        self.max_rows = max_rows if max_rows is not None else default_config.limits.max_stores_per_collection

        self._result = ParseResult()
        self._done = False
        self._row_index = 0
        self._columns: List[Tuple[str, str]] = []
        self._reader: Optional[Iterator[List[str]]] = None
        self._options = {
            name: {clean_name(option).casefold(): option for option in options}
            for name, options in schema.custom_fields.items()
        }

        self._prepare(text)

    # === Setup ===

    def _fail(self, reason: str):
        logger.warning(f"Import rejected: {reason}")
        self._result = ParseResult(error=reason)
        self._done = True

    def _prepare(self, text: Optional[str]):
        if text is None or not text.strip():
            self._fail("Input is empty")
            return

        text = text.lstrip('\ufeff')
        self._reader = csv.reader(io.StringIO(text), delimiter=self.config.delimiter)

        try:
            header = next(row for row in self._reader if any(cell.strip() for cell in row))
        except StopIteration:
            self._fail("Input has no header row")
            return
        except csv.Error as e:
            self._fail(f"Unreadable header: {e}")
            return

        self._resolve_header(header)

    def _resolve_header(self, header: List[str]):
        template_fields = {header_key(name): name for name in self.schema.custom_fields}
        columns = []
        seen = {}

        for position, cell in enumerate(header, start=1):
            title = clean_name(cell) or f"Column {position}"
            canonical = resolve_field(title)

            if canonical and canonical in self.schema.columns:
                column = (FIELD, canonical)
            elif header_key(title) in template_fields:
                column = (CUSTOM, template_fields[header_key(title)])
            else:
                column = (CUSTOM, title)

            key = (column[0], column[1] if column[0] == FIELD else header_key(column[1]))
            if key in seen:
                self._fail(f"Duplicate header column: {title!r} (also {seen[key]!r})")
                return
            seen[key] = title
            columns.append(column)

        if (FIELD, 'store_name') not in columns:
            logger.warning("Header has no store name column; every row will be rejected")

        self._columns = columns

    # === Rows ===

    @property
    def done(self) -> bool:
        return self._done

    @property
    def result(self) -> ParseResult:
        """Final parse result. Raises RuntimeError while parsing is incomplete."""
        if not self._done:
            raise RuntimeError("Parsing has not completed")
        return self._result

    def parse_batch(self, batch_size: Optional[int] = None) -> bool:
        """
        Parse up to batch_size data rows.

        Returns:
            True once the whole input has been parsed
        """
        if self._done:
            return True

        batch_size = batch_size or self.config.batch_size
        processed = 0

        while processed < batch_size:
            try:
                cells = next(self._reader)
            except StopIteration:
                self._finish()
                return True
            except csv.Error as e:
                self._row_index += 1
                processed += 1
                self._result.errors.append(RowError(self._row_index, f"Unreadable row: {e}"))
                continue

            if not any(cell.strip() for cell in cells):
                continue

            processed += 1
            if len(self._result.records) >= self.max_rows:
                self._result.truncated_rows += 1
                continue

            self._row_index += 1
            self._parse_row(cells)

        return False

    def run(self, batch_size: Optional[int] = None) -> ParseResult:
        """Parse to completion and return the result."""
        while not self.parse_batch(batch_size):
            pass
        return self.result

    def _finish(self):
        self._done = True
        result = self._result
        result.truncated = result.truncated_rows > 0
        if result.truncated:
            logger.warning(
                f"Import truncated at {self.max_rows} stores; {result.truncated_rows} rows not imported"
            )
        logger.info(f"Parsed {len(result.records)} records, {len(result.errors)} row errors")

    def _is_multi_value(self, column: Tuple[str, str]) -> bool:
        kind, name = column
        return kind == CUSTOM or name in MULTI_VALUE_FIELDS

    def _parse_row(self, cells: List[str]):
        width = len(self._columns)

        if len(cells) > width:
            if width and self._is_multi_value(self._columns[-1]):
                overflow = self.config.multi_value_delimiter.join(cells[width - 1:])
                cells = cells[:width - 1] + [overflow]
            else:
                self._result.errors.append(RowError(
                    self._row_index, f"Expected {width} columns, found {len(cells)}"
                ))
                return
        elif len(cells) < width:
            cells = cells + [''] * (width - len(cells))

        record: PartialStore = {}
        custom_fields: Dict[str, List[str]] = {}

        for (kind, name), cell in zip(self._columns, cells):
            value = cell.strip()
            if kind == FIELD:
                self._apply_field(record, name, value)
            else:
                values = self._split_options(name, value)
                if values:
                    custom_fields[name] = values

        if not record.get('store_name'):
            self._result.errors.append(RowError(self._row_index, "Missing store name"))
            return

        record['custom_fields'] = custom_fields
        self._result.records.append(record)

    def _apply_field(self, record: PartialStore, name: str, value: str):
        if name == 'store_name':
            record[name] = clean_name(value)
        elif name == 'tags':
            record[name] = normalize_tags(value, self.config.multi_value_delimiter)
        elif name == 'price_range':
            record[name] = price_bucket_id(value)
        elif name in ('on_sale', 'is_archived'):
            record[name] = parse_bool(value)
        elif name == 'rating':
            record[name] = parse_rating(value) if value else 0.0
        else:
            record[name] = value

    def _split_options(self, name: str, value: str) -> List[str]:
        if not value:
            return []
        known = self._options.get(name, {})
        values = []
        for part in value.split(self.config.multi_value_delimiter):
            part = clean_name(part)
            if not part:
                continue
            part = known.get(part.casefold(), part)
            if part not in values:
                values.append(part)
        return values


# === Convenience Functions ===

def parse_tabular(
    text: Optional[str],
    schema: FieldSchema,
    max_rows: Optional[int] = None,
) -> ParseResult:
    """
    Parse delimited text into candidate store records.

    Never raises for malformed input: top-level problems land in
    ParseResult.error, row problems in ParseResult.errors.

    Args:
        text: Raw CSV text (first row is the header)
        schema: Canonical columns and template custom fields
        max_rows: Store cap; defaults to the collection maximum
    """
    return RecordParser(text, schema, max_rows=max_rows).run()
