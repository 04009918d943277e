"""
Delimited file reader and row validator for revenue imports.

The whole file is parsed and validated before anything is returned. Either
every row converts, or ``ValidationFailed`` lists every (row, column, reason)
problem found; a partially valid file yields nothing.

File layout: ``;`` delimiter, one header line, Brazilian dates
(``DD/MM/YYYY``) and decimals (``1.234,56``). Reported row numbers are file
line numbers, the header being line 1.
"""

from __future__ import annotations

import csv
import io
import re
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

import pandas as pd

from .exceptions import RowError, ValidationFailed

INTEGER = "integer"
MONTH = "month"
DATE = "date"
DECIMAL = "decimal"
TEXT = "text"

_INT_RE = re.compile(r"^-?\d+$")
_DECIMAL_RE = re.compile(r"^-?(\d{1,3}(\.\d{3})+|\d+)(,\d{1,2})?$")
_CENTS = Decimal("0.01")
_LINE_BREAK = re.compile(r"\r\n|\r|\n")


@dataclass(frozen=True)
class ColumnSpec:
    name: str
    kind: str
    required: bool = False
    max_length: Optional[int] = None


RECEITA_COLUMNS: tuple[ColumnSpec, ...] = (
    ColumnSpec("exercicio", INTEGER, required=True),
    ColumnSpec("mes", MONTH, required=True),
    ColumnSpec("data_lancamento", DATE, required=True),
    ColumnSpec("categoria_economica", TEXT, required=True, max_length=255),
    ColumnSpec("origem", TEXT, required=True, max_length=255),
    ColumnSpec("especie", TEXT, max_length=255),
    ColumnSpec("rubrica", TEXT, max_length=255),
    ColumnSpec("alinea", TEXT, max_length=255),
    ColumnSpec("fonte_recursos", TEXT, required=True, max_length=255),
    ColumnSpec("valor_previsto_inicial", DECIMAL),
    ColumnSpec("valor_previsto_atualizado", DECIMAL),
    ColumnSpec("valor_arrecadado", DECIMAL, required=True),
    ColumnSpec("historico", TEXT),
)


def parse_int(raw: str) -> int:
    if not _INT_RE.match(raw):
        raise ValueError(f"invalid integer: {raw!r}")
    return int(raw)


def parse_month(raw: str) -> int:
    value = parse_int(raw)
    if not 1 <= value <= 12:
        raise ValueError(f"month must be between 1 and 12, got {value}")
    return value


def parse_br_date(raw: str) -> date:
    try:
        return datetime.strptime(raw, "%d/%m/%Y").date()
    except ValueError:
        raise ValueError(f"invalid date: {raw!r}, expected DD/MM/YYYY")


def parse_br_decimal(raw: str) -> Decimal:
    """
    ``1.234,56`` -> ``Decimal("1234.56")``; dot groups thousands, comma is the
    fraction. More than two fractional digits is an error, never rounded.
    """
    s = raw.replace(" ", "")
    if not _DECIMAL_RE.match(s):
        raise ValueError(f"invalid amount: {raw!r}, expected 1.234,56 with at most 2 decimal places")
    try:
        return Decimal(s.replace(".", "").replace(",", ".")).quantize(_CENTS)
    except InvalidOperation:
        raise ValueError(f"invalid amount: {raw!r}")


_CONVERTERS = {
    INTEGER: parse_int,
    MONTH: parse_month,
    DATE: parse_br_date,
    DECIMAL: parse_br_decimal,
}


_ENCODINGS = ("utf-8-sig", "cp1252")


def _decode(content: bytes) -> str:
    # cp1252 leaves five bytes undefined; latin-1 maps every byte
    for encoding in _ENCODINGS:
        try:
            return content.decode(encoding)
        except UnicodeDecodeError:
            continue
    return content.decode("latin-1")


def read_delimited(content: bytes, delimiter: str = ";") -> pd.DataFrame:
    """
    Data rows as strings, header skipped. The frame is as wide as the widest
    row so short and long rows can be told apart; missing trailing fields are NaN.
    Index ``i`` corresponds to file line ``i + 2``.
    """
    text = _decode(content)
    data_lines = _LINE_BREAK.split(text)[1:]
    width = max((line.count(delimiter) + 1 for line in data_lines), default=0)
    if not any(line.strip() for line in data_lines):
        raise ValidationFailed([RowError(None, None, "file has no data rows")])

    try:
        return pd.read_csv(
            io.StringIO(text),
            sep=delimiter,
            header=None,
            skiprows=1,
            names=list(range(width)),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=False,
            quoting=csv.QUOTE_NONE,
            engine="python",
        )
    except (pd.errors.ParserError, ValueError) as e:
        raise ValidationFailed([RowError(None, None, f"unreadable file: {e}")])


def _field_count(values: list[Any]) -> int:
    count = len(values)
    while count and pd.isna(values[count - 1]):
        count -= 1
    return count


def _convert_row(line_no: int, fields: list[str], columns: tuple[ColumnSpec, ...], errors: list[RowError]):
    row: dict[str, Any] = {}
    ok = True
    for spec, raw in zip(columns, fields):
        value = (raw or "").strip()
        if not value:
            if spec.required:
                errors.append(RowError(line_no, spec.name, "required value is missing"))
                ok = False
            elif spec.kind == DECIMAL:
                row[spec.name] = Decimal("0.00")
            else:
                row[spec.name] = None
            continue

        if spec.kind == TEXT:
            if spec.max_length and len(value) > spec.max_length:
                errors.append(RowError(line_no, spec.name, f"longer than {spec.max_length} characters"))
                ok = False
                continue
            row[spec.name] = value
            continue

        try:
            row[spec.name] = _CONVERTERS[spec.kind](value)
        except ValueError as e:
            errors.append(RowError(line_no, spec.name, str(e)))
            ok = False
    return row if ok else None


def parse_rows(content: bytes, columns: tuple[ColumnSpec, ...] = RECEITA_COLUMNS) -> list[dict[str, Any]]:
    """Convert every data row or raise ``ValidationFailed`` with all row errors."""
    df = read_delimited(content)

    rows: list[dict[str, Any]] = []
    errors: list[RowError] = []
    for idx, values in enumerate(df.itertuples(index=False, name=None)):
        line_no = idx + 2
        values = list(values)
        count = _field_count(values)
        # only empty or whitespace-only lines; ";;;" is a row of empty fields
        if count == 0 or (count == 1 and not str(values[0]).strip()):
            continue

        if count != len(columns):
            errors.append(RowError(line_no, None, f"expected {len(columns)} columns, found {count}"))
            continue

        row = _convert_row(line_no, values[:count], columns, errors)
        if row is not None:
            rows.append(row)

    if errors:
        raise ValidationFailed(errors)
    if not rows:
        raise ValidationFailed([RowError(None, None, "file has no data rows")])
    return rows
