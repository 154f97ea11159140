"""Streaming restart loop: train, score and reset the learner file by file"""

from contextlib import nullcontext
from dataclasses import dataclass, field
from fractions import Fraction
from pathlib import Path
from typing import List, Optional
import numpy as np
import yaml

from .classifier import StructuralClassifier
from .config import DEFAULT_MIN_INSTANCES, DEFAULT_TRAIN_FRACTION, RunConfig
from .data import DEFAULT_SUFFIX, list_data_files, load_batch
from .definitions import EvaluationRecord, Schema
from .exceptions import SourceReadFailure
from .learner import IncrementalLearner, StreamingVariationalBayes
from .records import RecordSink


@dataclass
class StreamingRestartLoop:
    """Treats every data file of a directory as one epoch.

    Per file: shuffle with the shared RNG, split into train and test, update
    the learner on the first train window, score the first test window, then
    reset the learner, update it on the test window and reset it again.
    """
    classifier: StructuralClassifier
    source_directory: Path
    seed: int = 1
    train_fraction: Fraction = DEFAULT_TRAIN_FRACTION
    min_instances: int = DEFAULT_MIN_INSTANCES
    file_suffix: str = DEFAULT_SUFFIX
    output_path: Optional[Path] = None   # No sink when None
    verbose: bool = True
    records: List[EvaluationRecord] = field(init=False, default_factory=list)
    total_log: float = field(init=False, default=0.0)

    def __post_init__(self):
        self.source_directory = Path(self.source_directory)
        if self.output_path is not None:
            self.output_path = Path(self.output_path)
        self.train_fraction = Fraction(self.train_fraction)

    @classmethod
    def from_config(cls, config: RunConfig) -> "StreamingRestartLoop":
        """Build schema, learner, classifier and loop from a run configuration"""
        try:
            schema = Schema.from_yaml(config.schema_path)
        except (OSError, ValueError, yaml.YAMLError) as exc:
            raise SourceReadFailure(f"Could not read schema {config.schema_path}: {exc}") from exc
        learner = StreamingVariationalBayes(
            window_size=config.window_size,
            max_iterations=config.max_iterations,
            convergence_threshold=config.convergence_threshold,
            elbo_tracking=config.elbo_tracking,
            seed=config.seed,
            verbose=config.verbose
        )
        classifier = StructuralClassifier(
            schema,
            class_name=config.class_name,
            family=config.model_family,
            topic_count=config.topic_count,
            learner=learner
        )
        return cls(
            classifier=classifier,
            source_directory=config.source_directory,
            seed=config.seed,
            train_fraction=config.train_fraction,
            min_instances=config.min_instances,
            file_suffix=config.file_suffix,
            output_path=config.record_path,
            verbose=config.verbose
        )

    @property
    def learner(self) -> IncrementalLearner:
        return self.classifier.learner

    @property
    def window_size(self) -> int:
        return self.learner.window_size

    def run(self, rng: Optional[np.random.Generator] = None) -> float:
        """Process every data file in filename order; returns the summed scores"""
        rng = rng if rng is not None else np.random.default_rng(self.seed)
        files = list_data_files(self.source_directory, self.file_suffix)

        self.records = []
        self.total_log = 0.0
        self.learner.init_learning(self.classifier.dag)
        self.learner.random_initialize(self.seed)
        if self.verbose:
            print(self.learner.current_model())

        opened = RecordSink(self.output_path) if self.output_path is not None else nullcontext()
        with opened as sink:
            for path in files:
                record = self.process_file(path, len(self.records), rng)
                if record is None:
                    continue
                self.records.append(record)
                self.total_log += record.score
                if sink is not None:
                    sink.write(record)
            if sink is not None:
                sink.write_total(self.total_log)

        if self.verbose:
            print(f"TOTAL LOG: {self.total_log}")
        return self.total_log

    def process_file(self, path: Path, epoch: int,
                     rng: np.random.Generator) -> Optional[EvaluationRecord]:
        """Run one epoch on a file; None when the file is skipped"""
        if self.verbose:
            print(f"EPOCH: {epoch}, {path.name}")

        batch = load_batch(path, self.classifier.schema)
        if len(batch) < self.min_instances:
            if self.verbose:
                print(f"Skipping {path.name}: {len(batch)} instances < {self.min_instances}")
            return None

        batch.shuffle(rng)
        train, test = batch.split(self.train_fraction)
        if len(test) == 0:
            if self.verbose:
                print(f"Skipping {path.name}: empty test partition")
            return None

        dag = self.classifier.dag
        self.learner.update(train.first_window(self.window_size))

        window = test.first_window(self.window_size)
        score = self.learner.predictive_log_likelihood(window) / len(window)
        record = EvaluationRecord(epoch=epoch, score=score, test_count=len(test), source=path.name)

        if self.verbose:
            print(f"OUT{epoch}\t{score}\t{len(test)}\n")
            print(self.learner.current_model())

        self.learner.init_learning(dag)
        self.learner.update(window)
        if self.verbose:
            print(self.learner.current_model())
        self.learner.init_learning(dag)
        return record
