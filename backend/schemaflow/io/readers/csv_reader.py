from __future__ import annotations
import csv
from pathlib import Path
from typing import Any, Dict, Iterator, Mapping, Optional
import polars as pl

from schemaflow.common.headers import make_unique_headers
from schemaflow.core.errors import RowSourceError
from schemaflow.core.models import Row
from schemaflow.plugins.api import Reader
from schemaflow.plugins.registry import register_reader
from schemaflow.common.logger import get_logger

log = get_logger()

NULL_VALUES = ["", "NA", "NaN"]


def _detect_delimiter(file_path: Path, sample_bytes: int = 8192) -> str:
    """
    Detect delimiter by sampling the file. Fallback to most-likely common delimiters.
    """
    with open(file_path, "rb") as f:
        raw = f.read(sample_bytes)
    text = raw.decode("utf-8-sig", errors="replace")
    try:
        dialect = csv.Sniffer().sniff(text, delimiters=",;\t|")
        return dialect.delimiter
    except csv.Error:
        for line in text.splitlines():
            if line.strip():
                candidates = [",", ";", "\t", "|"]
                counts = {d: line.count(d) for d in candidates}
                order = sorted(candidates, key=lambda d: (-counts[d], ",;\t|".find(d)))
                return order[0] if counts[order[0]] > 0 else ","
        return ","


class CSVRowSource:
    """
    Restartable row sequence over one CSV file.

    Every iteration re-reads the file from the top; rows come out in file
    order as plain dicts. Parse failures surface as RowSourceError from the
    iterator, never as a partial row.
    """

    def __init__(self, path: Path, delimiter: Optional[str] = None,
                 infer_schema_length: int = 2000, limit: Optional[int] = None):
        self.path = Path(path)
        self.delimiter = delimiter
        self.infer_schema_length = infer_schema_length
        self.limit = limit

    def _read(self, n_rows: Optional[int]) -> pl.DataFrame:
        if not self.path.is_file():
            raise RowSourceError(f"File not found: {self.path}", source=str(self.path))
        try:
            sep = self.delimiter or _detect_delimiter(self.path)
            log.debug(f"Delimiter: '{sep}' (repr: {repr(sep)})")
            df = pl.read_csv(
                self.path,
                separator=sep,
                infer_schema_length=self.infer_schema_length,
                has_header=True,
                encoding="utf8",
                null_values=NULL_VALUES,
                truncate_ragged_lines=True,
                ignore_errors=False,
                n_rows=n_rows,
            )
        except pl.exceptions.NoDataError:
            log.debug(f"Empty file: {self.path}")
            return pl.DataFrame()
        except (pl.exceptions.PolarsError, OSError, UnicodeDecodeError) as e:
            raise RowSourceError(f"Could not parse {self.path.name}: {e}", source=str(self.path)) from e

        log.debug(f"Read {len(df)} rows, {len(df.columns)} columns")
        return df.rename(dict(zip(df.columns, make_unique_headers(df.columns))))

    def __iter__(self) -> Iterator[Row]:
        df = self._read(self.limit)
        for row in df.iter_rows(named=True):
            yield row

    def __repr__(self) -> str:
        return f"CSVRowSource({str(self.path)!r})"


@register_reader
class CSVReader(Reader):
    """
    Reader for CSV files.

    Supports:
      - Automatic delimiter detection (overridden by options['delimiter'])
      - Numeric type inference; "", NA and NaN read as None
      - Header de-dup via `make_unique_headers`
    """
    name = "csv"

    def can_handle(self, source: Mapping[str, Any]) -> bool:
        t = str(source.get("type") or "").lower()
        if t == "csv":
            return True
        path = str(source.get("path") or "")
        return path.lower().endswith((".csv", ".tsv", ".txt"))

    def open(self, path: Path, options: Optional[Mapping[str, Any]] = None) -> CSVRowSource:
        opts: Dict[str, Any] = dict(options or {})
        log.dev(f"Opening CSV: {path}")
        return CSVRowSource(
            Path(path),
            delimiter=opts.get("delimiter"),
            infer_schema_length=int(opts.get("infer_schema_length", 2000)),
            limit=opts.get("limit"),
        )
