"""Run configuration loaded from YAML"""

from dataclasses import dataclass, fields
from fractions import Fraction
from pathlib import Path
from typing import Any, Mapping, Optional, Union
import yaml

from .dag import DAG_FAMILIES
from .exceptions import InvalidConfiguration, SourceReadFailure

DEFAULT_MIN_INSTANCES = 10
DEFAULT_TRAIN_FRACTION = Fraction(2, 3)
DEFAULT_SCHEMA_NAME = "schema.yml"


@dataclass(frozen=True)
class RunConfig:
    """Settings of one restart run; immutable once built"""
    source_directory: Path
    model_family: str = 'naive_bayes'
    topic_count: int = 1
    max_iterations: int = 100
    convergence_threshold: float = 0.1
    window_size: int = 10000             # Instances per learner window
    seed: int = 1
    min_instances: int = DEFAULT_MIN_INSTANCES  # Files with fewer instances are skipped
    train_fraction: Fraction = DEFAULT_TRAIN_FRACTION
    class_name: Optional[str] = None
    schema_file: Optional[Path] = None   # Defaults to <source_directory>/schema.yml
    file_suffix: str = '.tsv'
    output_path: Optional[Path] = None   # Defaults to a file inside source_directory
    elbo_tracking: bool = True
    verbose: bool = True

    def __post_init__(self):
        """Normalise paths and fractions, validate ranges"""
        object.__setattr__(self, 'source_directory', Path(self.source_directory))
        for key in ('schema_file', 'output_path'):
            if getattr(self, key) is not None:
                object.__setattr__(self, key, Path(getattr(self, key)))

        try:
            fraction = Fraction(str(self.train_fraction))
        except (TypeError, ValueError, ZeroDivisionError):
            raise InvalidConfiguration(f"Invalid train fraction {self.train_fraction!r}")
        object.__setattr__(self, 'train_fraction', fraction)

        if self.model_family not in DAG_FAMILIES:
            raise InvalidConfiguration(
                f"Unknown model family {self.model_family!r}, expected one of {sorted(DAG_FAMILIES)}"
            )
        if self.topic_count < 1:
            raise InvalidConfiguration(f"Topic count must be >= 1, got {self.topic_count}")
        if self.max_iterations < 1:
            raise InvalidConfiguration(f"Max iterations must be >= 1, got {self.max_iterations}")
        if not self.convergence_threshold > 0:
            raise InvalidConfiguration(
                f"Convergence threshold must be > 0, got {self.convergence_threshold}"
            )
        if self.window_size < 1:
            raise InvalidConfiguration(f"Window size must be >= 1, got {self.window_size}")
        if self.min_instances < 0:
            raise InvalidConfiguration(f"Minimum instances must be >= 0, got {self.min_instances}")
        if not 0 < fraction < 1:
            raise InvalidConfiguration(f"Train fraction must be in (0, 1), got {fraction}")

    @property
    def schema_path(self) -> Path:
        return self.schema_file if self.schema_file is not None else self.source_directory / DEFAULT_SCHEMA_NAME

    @property
    def record_path(self) -> Path:
        """Sink file for the evaluation records"""
        if self.output_path is not None:
            return self.output_path
        name = (f"svb_restart_{self.model_family}_{self.topic_count}_"
                f"{self.max_iterations}_{self.window_size}.txt")
        return self.source_directory / name

    @classmethod
    def from_dict(cls, config: Mapping[str, Any]) -> "RunConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(config) - known
        if unknown:
            raise InvalidConfiguration(f"Unknown configuration keys {sorted(unknown)}")
        if 'source_directory' not in config:
            raise InvalidConfiguration("Configuration needs a source_directory")
        return cls(**config)

    @classmethod
    def from_yaml(cls, yaml_path: Union[str, Path], **overrides) -> "RunConfig":
        """Create RunConfig from a YAML file with the non-None overrides applied.

        Relative paths in the file resolve against its directory; override
        paths are taken as given.
        """
        try:
            with open(yaml_path) as f:
                config = yaml.safe_load(f) or {}
        except OSError as exc:
            raise SourceReadFailure(f"Could not read configuration {yaml_path}: {exc}") from exc
        except yaml.YAMLError as exc:
            raise InvalidConfiguration(f"Malformed configuration {yaml_path}: {exc}") from exc
        if not isinstance(config, Mapping):
            raise InvalidConfiguration(f"Configuration {yaml_path} is not a mapping")

        base = Path(yaml_path).parent
        for key in ('source_directory', 'schema_file', 'output_path'):
            if config.get(key) is not None and not Path(config[key]).is_absolute():
                config[key] = base / config[key]
        config.update((k, v) for k, v in overrides.items() if v is not None)
        return cls.from_dict(config)
