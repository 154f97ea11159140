"""Data batches, lazy sub-batch streams and the tab-separated loader"""

from dataclasses import dataclass
from fractions import Fraction
from pathlib import Path
from typing import Iterator, List, Optional, Tuple, Union
import numpy as np
import pandas as pd

from .definitions import AttributeKind, Schema
from .exceptions import SourceReadFailure
from . import schema as _schema  # noqa: F401  attaches Schema methods

MISSING_VALUES = ['.', '?', 'NaN', 'nan', '']
DEFAULT_SUFFIX = '.tsv'


@dataclass(frozen=True, eq=False)
class DataInstance:
    """One row of a batch; NaN marks a missing value"""
    schema: Schema
    values: np.ndarray

    def get_value(self, name: str) -> float:
        return float(self.values[self.schema.index_of(name)])

    def is_missing(self, name: str) -> bool:
        return bool(np.isnan(self.values[self.schema.index_of(name)]))


@dataclass(eq=False)
class DataBatch:
    """Ordered instances sharing one schema"""
    schema: Schema
    values: np.ndarray              # (n, len(schema)); discrete values are state codes
    source: Optional[str] = None    # File the batch was read from

    def __post_init__(self):
        """Coerce values to a 2-D float matrix matching the schema"""
        values = np.asarray(self.values, dtype=float)
        if values.ndim == 1 and values.size == 0:
            values = values.reshape(0, len(self.schema))
        if values.ndim != 2 or values.shape[1] != len(self.schema):
            raise ValueError(
                f"Batch values of shape {values.shape} do not match "
                f"{len(self.schema)} schema attributes"
            )
        self.values = values

    def __len__(self) -> int:
        return self.values.shape[0]

    def __iter__(self) -> Iterator[DataInstance]:
        for row in self.values:
            yield DataInstance(self.schema, row)

    @property
    def n_instances(self) -> int:
        return len(self)

    def column(self, name: str) -> np.ndarray:
        return self.values[:, self.schema.index_of(name)]

    def subset(self, start: int, stop: int) -> "DataBatch":
        """Index-range view [start, stop) sharing storage with this batch"""
        return DataBatch(self.schema, self.values[start:stop], self.source)

    def first_window(self, size: int) -> "DataBatch":
        """First sub-batch of at most size instances"""
        return self.subset(0, size)

    def iter_batches(self, size: int) -> "DataStream":
        return DataStream(self, size)

    def shuffle(self, rng: np.random.Generator) -> None:
        """Shuffle instance order in place"""
        rng.shuffle(self.values)

    def split(self, train_fraction: Fraction = Fraction(2, 3)) -> Tuple["DataBatch", "DataBatch"]:
        """Train [0, limit) and test [limit + 1, n) partitions.

        limit = floor(n * train_fraction). The instance at index limit
        belongs to neither partition.
        """
        total = len(self)
        fraction = Fraction(train_fraction)
        limit = total * fraction.numerator // fraction.denominator
        return self.subset(0, limit), self.subset(limit + 1, total)


@dataclass
class DataStream:
    """Re-iterable partition of a batch into consecutive sub-batches"""
    batch: DataBatch
    batch_size: int

    def __post_init__(self):
        if self.batch_size < 1:
            raise ValueError(f"Batch size must be >= 1, got {self.batch_size}")

    def __iter__(self) -> Iterator[DataBatch]:
        for start in range(0, len(self.batch), self.batch_size):
            yield self.batch.subset(start, start + self.batch_size)

    def __len__(self) -> int:
        return -(-len(self.batch) // self.batch_size)

    def first(self) -> DataBatch:
        return self.batch.first_window(self.batch_size)


def _encode_column(frame: pd.DataFrame, schema: Schema, name: str,
                   path: Union[str, Path]) -> np.ndarray:
    """Convert one raw text column to floats, discrete states to codes"""
    attribute = schema.get_attribute(name)
    raw = frame[name]

    if attribute.kind is AttributeKind.DISCRETE and attribute.states:
        codes = raw.map(schema.state_index()[name])
        unknown = raw.notna() & codes.isna()
        if unknown.any():
            bad = raw[unknown].iloc[0]
            raise SourceReadFailure(f"{path}: unknown state {bad!r} for {name}")
        return codes.to_numpy(dtype=float)

    try:
        numeric = pd.to_numeric(raw).to_numpy(dtype=float)
    except (TypeError, ValueError) as exc:
        raise SourceReadFailure(f"{path}: non-numeric value in column {name}: {exc}") from exc

    if attribute.kind is AttributeKind.DISCRETE:
        observed = numeric[~np.isnan(numeric)]
        valid = (observed == np.floor(observed)) & (observed >= 0) & (observed < attribute.cardinality)
        if not valid.all():
            raise SourceReadFailure(
                f"{path}: value {observed[~valid][0]} out of range for {name} "
                f"with {attribute.cardinality} states"
            )
    return numeric


def load_batch(path: Union[str, Path], schema: Schema) -> DataBatch:
    """Load a tab-separated file with a header row into a DataBatch"""
    try:
        frame = pd.read_csv(path, sep='\t', dtype=str, na_values=MISSING_VALUES)
    except (OSError, ValueError) as exc:
        raise SourceReadFailure(f"Could not read {path}: {exc}") from exc

    missing = [name for name in schema.names() if name not in frame.columns]
    if missing:
        raise SourceReadFailure(f"{path}: missing columns {missing}")

    columns = [_encode_column(frame, schema, name, path) for name in schema.names()]
    values = np.column_stack(columns) if len(frame) else np.empty((0, len(schema)))
    return DataBatch(schema, values, source=str(path))


def list_data_files(directory: Union[str, Path], suffix: str = DEFAULT_SUFFIX) -> List[Path]:
    """Data files of a directory in lexicographic filename order"""
    directory = Path(directory)
    if not directory.is_dir():
        raise SourceReadFailure(f"Source directory {directory} does not exist")
    return sorted(
        (p for p in directory.iterdir() if p.is_file() and p.name.endswith(suffix)),
        key=lambda p: p.name
    )
