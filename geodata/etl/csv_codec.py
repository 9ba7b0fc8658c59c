"""CSV serialization of business records and merging of generated datasets."""

from __future__ import annotations

import csv
import io
import logging
import os
import tempfile
import time
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from geodata.core.aggregator import deduplicate
from geodata.core.errors import DecodingError, FileWriteError
from geodata.models import NOT_AVAILABLE, BusinessRecord

logger = logging.getLogger(__name__)

HEADER: Tuple[str, ...] = (
    "source",
    "primary_type",
    "name",
    "types",
    "rating",
    "user_ratings_total",
    "price_level",
    "price_range_min",
    "price_range_max",
    "lat",
    "lng",
    "photo_uri",
    "opening_hours",
    "website",
    "phone_national",
    "phone_international",
    "google_maps_uri",
    "formatted_address",
    "business_category",
    "denue_id",
)

_FIELD_NAMES = tuple(f.name for f in fields(BusinessRecord))
_OPTIONAL_FLOATS = {"rating"}
_OPTIONAL_INTS = {"user_ratings_total"}
_FLOATS = {"latitude", "longitude"}


@dataclass(frozen=True)
class MergeStats:
    google_rows: int
    inegi_rows: int

    @property
    def total(self) -> int:
        return self.google_rows + self.inegi_rows


def _render(value) -> str:
    if value is None:
        return NOT_AVAILABLE
    return str(value)


def format_fields(values: Sequence[str]) -> str:
    """Quote every field and double embedded quotes; nothing else is escaped."""
    buffer = io.StringIO()
    csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="").writerow(values)
    return buffer.getvalue()


def header_row() -> str:
    return ",".join(HEADER)


def to_csv_row(record: BusinessRecord) -> str:
    return format_fields([_render(getattr(record, name)) for name in _FIELD_NAMES])


def _read_rows(text: str) -> List[List[str]]:
    return [row for row in csv.reader(io.StringIO(text)) if row]


def parse_csv_row(line: str) -> BusinessRecord:
    rows = _read_rows(line)
    if len(rows) != 1:
        raise DecodingError(f"expected one CSV row, found {len(rows)}")
    return record_from_fields(rows[0])


def record_from_fields(values: Sequence[str]) -> BusinessRecord:
    if len(values) != len(_FIELD_NAMES):
        raise DecodingError(f"expected {len(_FIELD_NAMES)} columns, found {len(values)}")
    kwargs = {}
    for name, raw in zip(_FIELD_NAMES, values):
        try:
            if name in _OPTIONAL_FLOATS:
                kwargs[name] = None if raw in ("", NOT_AVAILABLE) else float(raw)
            elif name in _OPTIONAL_INTS:
                kwargs[name] = None if raw in ("", NOT_AVAILABLE) else int(raw)
            elif name in _FLOATS:
                kwargs[name] = float(raw)
            else:
                kwargs[name] = raw
        except ValueError as exc:
            raise DecodingError(f"column {name!r} has invalid value {raw!r}") from exc
    return BusinessRecord(**kwargs)


def parse_csv_lines(text: str) -> Tuple[List[str], List[List[str]]]:
    """Split CSV text into its header and data rows, honouring quoted newlines."""
    rows = _read_rows(text)
    if not rows:
        return [], []
    return rows[0], rows[1:]


def dataset_filename(dataset_name: str, timestamp: float) -> str:
    return f"{dataset_name}_{int(timestamp)}.csv"


def write_csv(
    rows: Iterable[str],
    output_dir,
    dataset_name: str,
    clock: Callable[[], float] = time.time,
) -> Path:
    """Write the header plus pre-formatted ``rows`` to ``<name>_<unix>.csv``.

    The file is written to a temp file in the same directory and renamed into
    place, so readers never see a partial dataset.
    """
    directory = Path(output_dir)
    path = directory / dataset_filename(dataset_name, clock())
    lines = [header_row(), *rows]
    tmp_name: Optional[str] = None
    try:
        directory.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w", encoding="utf-8", newline="", dir=directory, suffix=".tmp", delete=False
        ) as fh:
            tmp_name = fh.name
            fh.write("\n".join(lines))
            fh.write("\n")
        os.replace(tmp_name, path)
    except OSError as exc:
        if tmp_name and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise FileWriteError(f"could not write {path}: {exc}") from exc

    logger.info("CSV saved to %s (%d rows)", path, len(lines) - 1)
    return path


def write_records(
    records: Iterable[BusinessRecord],
    output_dir,
    dataset_name: str,
    clock: Callable[[], float] = time.time,
) -> Path:
    return write_csv((to_csv_row(record) for record in records), output_dir, dataset_name, clock)


def read_dataset_rows(path) -> List[List[str]]:
    """Data rows of a generated dataset, header dropped.

    An unreadable, non UTF-8 or malformed file raises ``FileWriteError``.
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
        _, rows = parse_csv_lines(text)
    except (OSError, UnicodeDecodeError, csv.Error) as exc:
        raise FileWriteError(f"could not read Google dataset {path}: {exc}") from exc
    return rows


def merge_rows(
    google_rows: Sequence[Sequence[str]],
    inegi_records: Iterable[BusinessRecord],
    output_dir,
    dataset_name: str = "merged_google_inegi_dataset",
    clock: Callable[[], float] = time.time,
) -> Tuple[Path, MergeStats]:
    """Write Google rows followed by deduplicated INEGI records.

    INEGI IDs are only compared with each other: a business present in both
    sources appears twice, once under each provider's ID.
    """
    unique_inegi = deduplicate(inegi_records)

    rows = [format_fields(row) for row in google_rows]
    rows.extend(to_csv_row(record) for record in unique_inegi)

    path = write_csv(rows, output_dir, dataset_name, clock)
    stats = MergeStats(google_rows=len(google_rows), inegi_rows=len(unique_inegi))
    logger.info(
        "Merged %d Google rows and %d INEGI rows into %s (%d total)",
        stats.google_rows,
        stats.inegi_rows,
        path,
        stats.total,
    )
    return path, stats


def merge_csv(
    google_csv_path,
    inegi_records: Iterable[BusinessRecord],
    output_dir,
    dataset_name: str = "merged_google_inegi_dataset",
    clock: Callable[[], float] = time.time,
) -> Tuple[Path, MergeStats]:
    """Append deduplicated INEGI records to the rows of a Google dataset file."""
    return merge_rows(read_dataset_rows(google_csv_path), inegi_records, output_dir, dataset_name, clock)
