# -*- coding: utf-8 -*-
"""
Emission Factor File Reader

Reads a delimited text file of emission factors into ``ImportRow``
objects.

Supports:
    - Comma-delimited files, and semicolon-delimited exports that use a
      decimal comma
    - Encoding detection via chardet, BOM handling
    - Header synonyms in English and Portuguese (``HEADER_SYNONYMS``);
      unrecognised headers are ignored
    - Excel workbooks are rejected with ``UnsupportedFormatError``

Example:
    >>> reader = FactorFileReader()
    >>> parsed = reader.read("factors.csv")
    >>> parsed.rows[0].name
    'Diesel'
"""

from __future__ import annotations

import csv
import io
import logging
import re
import unicodedata
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple, Union

import chardet
from pydantic import BaseModel, Field

from ghgengine.exceptions import FileReadError, UnsupportedFormatError
from ghgengine.factor_import.models import ImportRow
from ghgengine.provenance import hash_bytes

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Header synonyms (normalised header -> ImportRow field)
# ---------------------------------------------------------------------------

HEADER_SYNONYMS: Dict[str, str] = {
    "nome": "name",
    "name": "name",
    "categoria": "category",
    "category": "category",
    "unidade": "unit",
    "unit": "unit",
    "activity_unit": "unit",
    "co2": "co2_factor",
    "co2_factor": "co2_factor",
    "fator_co2": "co2_factor",
    "ch4": "ch4_factor",
    "ch4_factor": "ch4_factor",
    "fator_ch4": "ch4_factor",
    "n2o": "n2o_factor",
    "n2o_factor": "n2o_factor",
    "fator_n2o": "n2o_factor",
    "fonte": "source",
    "source": "source",
    "ano": "validity_year",
    "ano_validade": "validity_year",
    "year": "validity_year",
    "year_of_validity": "validity_year",
}

SUPPORTED_EXTENSIONS = (".csv", ".txt")
EXCEL_EXTENSIONS = (".xlsx", ".xls", ".xlsm", ".ods")

_BOM_MAP: Dict[bytes, str] = {
    b"\xef\xbb\xbf": "utf-8-sig",
    b"\xff\xfe": "utf-16",
    b"\xfe\xff": "utf-16",
}

# Zip container (xlsx/ods) and OLE2 compound document (xls)
_BINARY_SIGNATURES = (b"PK\x03\x04", b"\xd0\xcf\x11\xe0")

_DELIMITERS = (",", ";")


def _normalise_header(header: str) -> str:
    """Lower-case, strip accents, and join words with underscores."""
    text = unicodedata.normalize("NFKD", header.strip().lower())
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    return re.sub(r"[\s\-]+", "_", text)


class ParsedFactorFile(BaseModel):
    """Rows and metadata read from one uploaded file."""

    file_name: str
    file_hash: str = Field(..., description="SHA-256 of the raw file bytes")
    encoding: str
    delimiter: str
    rows: List[ImportRow] = Field(default_factory=list)
    mapped_headers: Dict[str, str] = Field(default_factory=dict)
    ignored_headers: List[str] = Field(default_factory=list)


class FactorFileReader:
    """Reads and maps emission factor CSV files."""

    def __init__(self, default_encoding: str = "utf-8", sample_size: int = 65536):
        self._default_encoding = default_encoding
        self._sample_size = sample_size

    def read(
        self,
        source: Union[str, Path, bytes],
        file_name: Optional[str] = None,
    ) -> ParsedFactorFile:
        """Read ``source`` (path or raw bytes) into import rows.

        Raises:
            UnsupportedFormatError: Excel workbook or unknown extension.
            FileReadError: File missing, unreadable, or without a header row.
        """
        name = file_name or (Path(source).name if not isinstance(source, bytes) else "upload.csv")
        self._check_format(name)

        raw = self._read_bytes(source)
        if raw.startswith(_BINARY_SIGNATURES):
            raise UnsupportedFormatError(
                f"{name} looks like a spreadsheet workbook; Excel import is not "
                "implemented, export the sheet as CSV",
                context={"file_name": name},
            )

        encoding = self.detect_encoding(raw)
        try:
            text = raw.decode(encoding)
        except (UnicodeDecodeError, LookupError) as exc:
            raise FileReadError(
                f"Cannot decode {name} as {encoding}: {exc}",
                context={"file_name": name, "encoding": encoding},
            ) from exc

        first_line = next((line for line in text.splitlines() if line.strip()), None)
        if first_line is None:
            raise FileReadError(f"{name} is empty", context={"file_name": name})

        delimiter = self.detect_delimiter(first_line)
        records = self._records(text, delimiter)
        header_record = next(records, None)
        if header_record is None:
            raise FileReadError(f"{name} has no header row", context={"file_name": name})
        columns, mapped, ignored = self.map_headers(header_record[1])

        rows = []
        for line_number, cells in records:
            values: Dict[str, str] = {}
            for position, field_name in columns:
                if position < len(cells) and field_name not in values:
                    values[field_name] = cells[position]
            rows.append(ImportRow(row_number=line_number, **values))

        logger.info(
            "Read %d rows from %s (encoding=%s, delimiter=%r, ignored headers=%s)",
            len(rows), name, encoding, delimiter, ignored,
        )
        return ParsedFactorFile(
            file_name=name,
            file_hash=hash_bytes(raw),
            encoding=encoding,
            delimiter=delimiter,
            rows=rows,
            mapped_headers=mapped,
            ignored_headers=ignored,
        )

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def map_headers(
        self, headers: List[str],
    ) -> Tuple[List[Tuple[int, str]], Dict[str, str], List[str]]:
        """Map header cells to row fields through ``HEADER_SYNONYMS``.

        Returns:
            (column position, field) pairs, header->field mapping, and the
            headers that were ignored.
        """
        columns: List[Tuple[int, str]] = []
        mapped: Dict[str, str] = {}
        ignored: List[str] = []
        for position, header in enumerate(headers):
            field_name = HEADER_SYNONYMS.get(_normalise_header(header))
            if field_name is None:
                if header.strip():
                    ignored.append(header)
                continue
            columns.append((position, field_name))
            mapped[header] = field_name
        return columns, mapped, ignored

    def detect_encoding(self, raw: bytes) -> str:
        """Detect the text encoding: BOM, strict UTF-8, then chardet."""
        for bom, encoding in _BOM_MAP.items():
            if raw.startswith(bom):
                return encoding

        try:
            raw.decode("utf-8")
            return "utf-8"
        except UnicodeDecodeError:
            pass

        result = chardet.detect(raw[:self._sample_size])
        encoding = (result or {}).get("encoding")
        if not encoding:
            return self._default_encoding
        encoding = encoding.lower()
        logger.debug(
            "chardet detected encoding: %s (confidence %.2f)",
            encoding, result.get("confidence") or 0.0,
        )
        return encoding

    def detect_delimiter(self, header_line: str) -> str:
        """Pick the delimiter occurring most often in the header line."""
        counts = {d: self._count_unquoted(header_line, d) for d in _DELIMITERS}
        best = max(_DELIMITERS, key=lambda d: counts[d])
        return best if counts[best] > 0 else ","

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _records(text: str, delimiter: str) -> Iterator[Tuple[int, List[str]]]:
        """Yield (first physical line, cells) for every non-blank record.

        Quoted cells may span lines, so blank records are dropped only
        after parsing.
        """
        reader = csv.reader(io.StringIO(text, newline=""), delimiter=delimiter)
        start = 1
        for cells in reader:
            line_number, start = start, reader.line_num + 1
            if any(cell.strip() for cell in cells):
                yield line_number, cells

    def _check_format(self, name: str) -> None:
        suffix = Path(name).suffix.lower()
        if suffix in EXCEL_EXTENSIONS:
            raise UnsupportedFormatError(
                "Excel import is not implemented; export the sheet as CSV",
                context={"file_name": name},
            )
        if suffix and suffix not in SUPPORTED_EXTENSIONS:
            raise UnsupportedFormatError(
                f"Unsupported file type: {suffix}",
                context={"file_name": name, "supported": list(SUPPORTED_EXTENSIONS)},
            )

    def _read_bytes(self, source: Union[str, Path, bytes]) -> bytes:
        if isinstance(source, bytes):
            return source
        try:
            with open(source, "rb") as fh:
                return fh.read()
        except OSError as exc:
            raise FileReadError(
                f"Cannot read file {source}: {exc}",
                context={"path": str(source)},
            ) from exc

    @staticmethod
    def _count_unquoted(line: str, delimiter: str) -> int:
        count = 0
        in_quotes = False
        for ch in line:
            if ch == '"':
                in_quotes = not in_quotes
            elif ch == delimiter and not in_quotes:
                count += 1
        return count


__all__ = [
    "HEADER_SYNONYMS",
    "SUPPORTED_EXTENSIONS",
    "EXCEL_EXTENSIONS",
    "ParsedFactorFile",
    "FactorFileReader",
]
