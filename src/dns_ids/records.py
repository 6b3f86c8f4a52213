"""
Feature record model: datasets, training-file parsing and writing.

A feature record is an insertion-ordered dict of attribute name to string
value. A Dataset keeps its records in a string-typed pandas DataFrame whose
first column is the category (label) attribute.
"""

import csv
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Set, Union

import pandas as pd

from . import config
from .errors import EmptyInputError, FormatError

logger = logging.getLogger(__name__)

FeatureRecord = Dict[str, str]
PathLike = Union[str, Path]


@dataclass
class Dataset:
    """
    Immutable-by-convention training or evaluation set.

    Fields:
      frame
        One row per record, one str column per attribute, category first.

      attributes
        Feature attribute names in header order (category excluded).

      category
        Name of the label attribute.
    """

    frame: pd.DataFrame
    attributes: List[str]
    category: str = config.CATEGORY_ATTRIBUTE

    def __len__(self) -> int:
        return len(self.frame)

    @property
    def header(self) -> List[str]:
        return [self.category] + list(self.attributes)

    def records(self) -> List[FeatureRecord]:
        return self.frame.to_dict('records')


def _validate_header(header: List[str]) -> None:
    if not header or not any(name.strip() for name in header):
        raise FormatError("empty header row", line=1)
    if any(not name for name in header):
        raise FormatError("header contains an empty attribute name", line=1)
    duplicates = sorted({name for name in header if header.count(name) > 1})
    if duplicates:
        raise FormatError(f"duplicate attribute names in header: {duplicates}", line=1)


def _build_frame(rows: List[List[str]], header: List[str]) -> pd.DataFrame:
    return pd.DataFrame(rows, columns=header, dtype=str)


def load(path: PathLike) -> Dataset:
    """
    Parse a training file into a Dataset.

    The first header column names the category attribute, the rest are
    feature attributes. Blank lines are ignored.

    Args:
        path: Path to a comma-separated training file

    Returns:
        Dataset with every row of the file

    Raises:
        FormatError: Bad header, column count mismatch, or no data rows
        OSError: The file cannot be read
    """
    header: Optional[List[str]] = None
    rows: List[List[str]] = []

    with open(path, 'r', newline='', encoding='utf-8') as f:
        reader = csv.reader(f)
        try:
            for row in reader:
                if not row:
                    continue
                if header is None:
                    header = row
                    _validate_header(header)
                    continue
                if len(row) != len(header):
                    raise FormatError(
                        f"expected {len(header)} columns, got {len(row)}",
                        line=reader.line_num
                    )
                rows.append(row)
        except csv.Error as e:
            raise FormatError(str(e), line=reader.line_num) from e

    if header is None:
        raise FormatError(f"{path} is empty")
    if not rows:
        raise FormatError(f"{path} has a header but no records")

    logger.debug(f"Loaded {len(rows)} records with header {header} from {path}")
    return Dataset(frame=_build_frame(rows, header), attributes=header[1:], category=header[0])


def from_records(records: Sequence[Mapping[str, str]],
                 category: str = config.CATEGORY_ATTRIBUTE) -> Dataset:
    """
    Build a Dataset from accumulated in-memory records.

    Every record must carry the category attribute and the same attribute
    names as the first record.
    """
    if not records:
        raise EmptyInputError("cannot build a dataset from zero records")

    names = list(records[0].keys())
    if category not in names:
        raise FormatError(f"records do not contain the category attribute {category!r}")

    header = [category] + [name for name in names if name != category]
    expected = set(header)
    rows = []
    for index, record in enumerate(records):
        if set(record.keys()) != expected:
            raise FormatError(f"record {index} has attributes {sorted(record.keys())}, "
                              f"expected {sorted(expected)}")
        rows.append([str(record[name]) for name in header])

    return Dataset(frame=_build_frame(rows, header), attributes=header[1:], category=category)


def write_dataset(dataset: Dataset, path: PathLike) -> None:
    """Write a Dataset back out in training-file form (header first)."""
    with open(path, 'w', newline='', encoding='utf-8') as f:
        writer = csv.writer(f, lineterminator='\n')
        writer.writerow(dataset.header)
        writer.writerows(dataset.frame[dataset.header].itertuples(index=False, name=None))


def unique_values(records: pd.DataFrame, attribute: str) -> Set[str]:
    """Distinct values of attribute across records."""
    return set(records[attribute].unique())


def most_common(records: pd.DataFrame, attribute: str) -> str:
    """
    Most frequent value of attribute.

    Values are scanned in sorted order and a value only takes over on a
    strictly higher count, so ties go to the smallest value. Returns an
    empty string for empty input; callers guard against that case.
    """
    if records.empty:
        return ''

    counts = records[attribute].value_counts()
    best = ''
    best_count = 0
    for value in sorted(counts.index):
        if counts[value] > best_count:
            best = value
            best_count = counts[value]
    return best


class TrainingFileWriter:
    """
    Appends labelled records to a training file.

    The file is created with a header row when it does not exist. Appending
    to an existing file whose header differs is refused, since the loader
    would otherwise pair values with the wrong attribute names.
    """

    def __init__(self, path: PathLike, header: Optional[Sequence[str]] = None):
        self.path = Path(path)
        self.header = list(header) if header is not None else list(config.HEADER)
        self.rows_written = 0
        self._file = None
        self._writer = None

    def open(self) -> 'TrainingFileWriter':
        exists = self.path.exists() and self.path.stat().st_size > 0
        if exists:
            with open(self.path, 'r', newline='', encoding='utf-8') as f:
                existing = next(csv.reader(f), [])
            if existing != self.header:
                raise FormatError(f"{self.path} has header {existing}, expected {self.header}", line=1)

        self._file = open(self.path, 'a', newline='', encoding='utf-8')
        self._writer = csv.writer(self._file, lineterminator='\n')
        if not exists:
            logger.info(f"Creating training file {self.path}")
            self._writer.writerow(self.header)
            self._file.flush()
        return self

    def append(self, record: Mapping[str, str]) -> None:
        if self._writer is None:
            raise RuntimeError("training file writer is not open")

        missing = [name for name in self.header if name not in record]
        if missing:
            raise FormatError(f"record is missing attributes {missing}")

        self._writer.writerow([record[name] for name in self.header])
        self._file.flush()
        self.rows_written += 1

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None
            self._writer = None

    def __enter__(self) -> 'TrainingFileWriter':
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
