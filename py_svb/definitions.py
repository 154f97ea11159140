"""Core dataclass definitions for the streaming VB restart harness"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple


class AttributeKind(str, Enum):
    """State-space kind of an attribute"""
    DISCRETE = "discrete"
    CONTINUOUS = "continuous"


@dataclass(frozen=True)
class AttributeDefinition:
    """Represents a single attribute definition from the schema YAML"""
    name: str                                # Column name in the data files
    kind: AttributeKind                      # discrete or continuous
    cardinality: Optional[int] = None        # Number of states, discrete only
    states: Optional[Tuple[str, ...]] = None  # Optional state labels, discrete only

    def __post_init__(self):
        """Validate attribute definition"""
        try:
            kind = AttributeKind(self.kind)
        except ValueError:
            raise ValueError(f"Invalid attribute kind {self.kind!r} for {self.name}")
        object.__setattr__(self, 'kind', kind)

        if not self.name:
            raise ValueError("Attribute name must not be empty")

        if kind is AttributeKind.CONTINUOUS:
            if self.cardinality is not None or self.states:
                raise ValueError(f"Continuous attribute {self.name} cannot declare states")
            return

        # Discrete: cardinality may come from the state labels
        if self.states is not None:
            states = tuple(str(s) for s in self.states)
            if len(set(states)) != len(states):
                raise ValueError(f"Duplicate state labels for {self.name}")
            if self.cardinality is not None and self.cardinality != len(states):
                raise ValueError(
                    f"Cardinality {self.cardinality} does not match "
                    f"{len(states)} states for {self.name}"
                )
            object.__setattr__(self, 'states', states)
            object.__setattr__(self, 'cardinality', len(states))

        if self.cardinality is None or self.cardinality < 1:
            raise ValueError(f"Invalid cardinality {self.cardinality} for {self.name}")

    @property
    def is_discrete(self) -> bool:
        return self.kind is AttributeKind.DISCRETE


@dataclass
class Schema:
    """Ordered attribute definitions shared by every batch of one source"""
    attributes: List[AttributeDefinition] = field(default_factory=list)
    origin: str = "schema"  # Identity shared by variables derived from this schema

    def __post_init__(self):
        """Check attribute names are unique"""
        seen = set()
        for attribute in self.attributes:
            if attribute.name in seen:
                raise ValueError(f"Duplicate attribute {attribute.name}")
            seen.add(attribute.name)


@dataclass(frozen=True)
class Variable:
    """Model node derived from an attribute; equal by name and schema origin"""
    name: str
    origin: str
    kind: AttributeKind = field(compare=False)
    cardinality: Optional[int] = field(default=None, compare=False)
    index: Optional[int] = field(default=None, compare=False)  # Schema column, None if hidden

    @property
    def is_discrete(self) -> bool:
        return self.kind is AttributeKind.DISCRETE

    @property
    def is_observed(self) -> bool:
        return self.index is not None

    def __str__(self):
        return self.name


@dataclass
class ParentSet:
    """Structural parents of one variable"""
    main_var: Variable
    parents: List[Variable] = field(default_factory=list)


@dataclass
class DAG:
    """Mapping from every variable in scope to its parent set"""
    variables: List[Variable]
    parent_sets: Dict[Variable, ParentSet] = field(init=False)

    def __post_init__(self):
        """Create an empty parent set for every variable"""
        names = [v.name for v in self.variables]
        if len(set(names)) != len(names):
            raise ValueError("DAG variables must have unique names")
        self.variables = list(self.variables)
        self.parent_sets = {v: ParentSet(main_var=v) for v in self.variables}


@dataclass(frozen=True)
class EvaluationRecord:
    """Held-out score of one processed epoch"""
    epoch: int                     # Index among processed (non-skipped) files
    score: float                   # Mean held-out log-likelihood
    test_count: int                # Instances in the test partition
    source: Optional[str] = None   # File the epoch was read from
