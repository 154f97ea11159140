"""Append-only sink for per-epoch evaluation records"""

from pathlib import Path
from typing import List, Optional, Union
import pandas as pd

from .definitions import EvaluationRecord

TOTAL_TAG = "TOTAL"


def format_record(record: EvaluationRecord) -> str:
    """epoch, score and test count, tab separated"""
    return f"{record.epoch}\t{record.score!r}\t{record.test_count}\n"


class RecordSink:
    """Text file opened in append mode; every write is flushed"""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._handle = None

    def __enter__(self) -> "RecordSink":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def open(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._handle = open(self.path, 'a', encoding='utf-8')

    def _write(self, line: str) -> None:
        if self._handle is None:
            raise ValueError(f"Record sink {self.path} is not open")
        self._handle.write(line)
        self._handle.flush()

    def write(self, record: EvaluationRecord) -> None:
        self._write(format_record(record))

    def write_total(self, total: float) -> None:
        self._write(f"{TOTAL_TAG}\t{total!r}\n")

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None


def read_records(path: Union[str, Path]) -> List[EvaluationRecord]:
    """Parse epoch lines of a sink file back into records"""
    frame = pd.read_csv(path, sep='\t', header=None, dtype=str,
                        names=['epoch', 'score', 'test_count'])
    frame = frame[frame['epoch'] != TOTAL_TAG]
    return [
        EvaluationRecord(int(row.epoch), float(row.score), int(row.test_count))
        for row in frame.itertuples(index=False)
    ]


def read_total(path: Union[str, Path]) -> Optional[float]:
    """Last summary total written to a sink file"""
    frame = pd.read_csv(path, sep='\t', header=None, dtype=str,
                        names=['epoch', 'score', 'test_count'])
    totals = frame.loc[frame['epoch'] == TOTAL_TAG, 'score']
    return float(totals.iloc[-1]) if len(totals) else None
