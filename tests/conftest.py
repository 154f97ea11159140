"""Test configuration and fixtures"""
from pathlib import Path
import numpy as np
import pandas as pd
import pytest
import yaml

from py_svb import DataBatch, Schema

MIXED_SCHEMA = {
    'attributes': {
        'C': {'kind': 'discrete', 'cardinality': 2},
        'X1': {'kind': 'discrete', 'cardinality': 3},
        'X2': {'kind': 'continuous'},
    }
}


def generate_frame(rng: np.random.Generator, n: int) -> pd.DataFrame:
    """Two well separated classes: X1 skewed by class, X2 shifted by class"""
    c = rng.integers(0, 2, n)
    x1 = np.where(
        c == 0,
        rng.choice(3, n, p=[0.8, 0.15, 0.05]),
        rng.choice(3, n, p=[0.05, 0.15, 0.8])
    )
    x2 = rng.normal(np.where(c == 0, -3.0, 3.0), 1.0)
    return pd.DataFrame({'C': c, 'X1': x1, 'X2': x2})


@pytest.fixture
def test_data_dir():
    """Get path to test data directory"""
    return Path(__file__).parent / "test_data"


@pytest.fixture
def mixed_schema():
    """Schema with C(discrete, 2), X1(discrete, 3), X2(continuous)"""
    return Schema.from_dict(MIXED_SCHEMA, origin="mixed")


@pytest.fixture
def continuous_schema():
    return Schema.from_dict(
        {'attributes': {'A': {'kind': 'continuous'}, 'B': {'kind': 'continuous'}}},
        origin="continuous"
    )


@pytest.fixture
def make_frame():
    """Factory for generated data frames"""
    def _make(n: int, seed: int = 0) -> pd.DataFrame:
        return generate_frame(np.random.default_rng(seed), n)
    return _make


@pytest.fixture
def make_batch(mixed_schema, make_frame):
    """Factory for generated batches over the mixed schema"""
    def _make(n: int, seed: int = 0) -> DataBatch:
        frame = make_frame(n, seed)
        return DataBatch(mixed_schema, frame[mixed_schema.names()].to_numpy(dtype=float))
    return _make


@pytest.fixture
def write_source_dir(tmp_path):
    """Factory writing schema.yml plus one TSV file per named frame"""
    def _write(frames, name: str = "source") -> Path:
        directory = tmp_path / name
        directory.mkdir()
        with open(directory / "schema.yml", "w") as f:
            yaml.safe_dump(MIXED_SCHEMA, f)
        for filename, frame in frames.items():
            frame.to_csv(directory / filename, sep='\t', index=False)
        return directory
    return _write


@pytest.fixture
def make_source_dir(write_source_dir):
    """Factory generating one file of each requested size"""
    def _make(sizes, name: str = "source", seed: int = 0) -> Path:
        rng = np.random.default_rng(seed)
        frames = {filename: generate_frame(rng, n) for filename, n in sizes.items()}
        return write_source_dir(frames, name)
    return _make
