"""Implementation of DAG and ParentSet operations plus the DAG family table"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Union

from .definitions import DAG, AttributeKind, ParentSet, Schema, Variable
from .exceptions import InvalidConfiguration, InvalidStructure
from . import schema as _schema  # noqa: F401  attaches Schema methods

HIDDEN_VAR_NAME = "HiddenVar"

VariableRef = Union[Variable, str]


class ParentSetImplementation:
    """Implementation class for ParentSet operations"""

    @staticmethod
    def add_parent(parent_set: ParentSet, var: Variable) -> None:
        """Add a parent, refusing self-parenting and duplicates"""
        if var == parent_set.main_var:
            raise InvalidStructure(f"{var.name} cannot be its own parent")
        if var in parent_set.parents:
            raise InvalidStructure(f"{var.name} is already a parent of {parent_set.main_var.name}")
        parent_set.parents.append(var)

    @staticmethod
    def remove_parent(parent_set: ParentSet, var: Variable) -> None:
        if var not in parent_set.parents:
            raise KeyError(f"{var.name} is not a parent of {parent_set.main_var.name}")
        parent_set.parents.remove(var)

    @staticmethod
    def format_parent_set(parent_set: ParentSet) -> str:
        names = ", ".join(p.name for p in parent_set.parents)
        return f"{parent_set.main_var.name} : {{ {names} }}"


class DAGImplementation:
    """Implementation class for DAG operations"""

    @staticmethod
    def get_variable(dag: DAG, name: str) -> Variable:
        for var in dag.variables:
            if var.name == name:
                return var
        raise KeyError(f"Unknown variable {name}")

    @staticmethod
    def get_parent_set(dag: DAG, var: VariableRef) -> ParentSet:
        """Parent set of a variable given by object or name"""
        if isinstance(var, str):
            var = DAGImplementation.get_variable(dag, var)
        if var not in dag.parent_sets:
            raise KeyError(f"Variable {var.name} is not in the DAG")
        return dag.parent_sets[var]

    @staticmethod
    def roots(dag: DAG) -> List[Variable]:
        """Variables with an empty parent set"""
        return [v for v in dag.variables if not dag.parent_sets[v].parents]

    @staticmethod
    def children_of(dag: DAG, var: VariableRef) -> List[Variable]:
        if isinstance(var, str):
            var = DAGImplementation.get_variable(dag, var)
        return [v for v in dag.variables if var in dag.parent_sets[v].parents]

    @staticmethod
    def contains_cycles(dag: DAG) -> bool:
        """Kahn's algorithm: a cycle leaves some nodes with unresolved parents"""
        pending = {v: len(dag.parent_sets[v].parents) for v in dag.variables}
        ready = [v for v, n in pending.items() if n == 0]
        visited = 0
        while ready:
            var = ready.pop()
            visited += 1
            for child in DAGImplementation.children_of(dag, var):
                pending[child] -= 1
                if pending[child] == 0:
                    ready.append(child)
        return visited != len(dag.variables)

    @staticmethod
    def structure(dag: DAG) -> Dict[str, List[str]]:
        """Variable name to parent names"""
        return {v.name: [p.name for p in dag.parent_sets[v].parents] for v in dag.variables}

    @staticmethod
    def format_dag(dag: DAG) -> str:
        lines = ["DAG"]
        for var in dag.variables:
            lines.append(str(dag.parent_sets[var]))
        return "\n".join(lines)


# Add implementation methods to ParentSet class
def _parent_set_add_parent(self, var):
    return ParentSetImplementation.add_parent(self, var)

def _parent_set_remove_parent(self, var):
    return ParentSetImplementation.remove_parent(self, var)

def _parent_set_number_of_parents(self):
    return len(self.parents)

def _parent_set_contains(self, var):
    return var in self.parents

def _parent_set_format(self):
    return ParentSetImplementation.format_parent_set(self)

ParentSet.add_parent = _parent_set_add_parent
ParentSet.remove_parent = _parent_set_remove_parent
ParentSet.number_of_parents = _parent_set_number_of_parents
ParentSet.__contains__ = _parent_set_contains
ParentSet.__str__ = _parent_set_format


# Add implementation methods to DAG class
def _dag_get_variable(self, name):
    return DAGImplementation.get_variable(self, name)

def _dag_get_parent_set(self, var):
    return DAGImplementation.get_parent_set(self, var)

def _dag_roots(self):
    return DAGImplementation.roots(self)

def _dag_children_of(self, var):
    return DAGImplementation.children_of(self, var)

def _dag_contains_cycles(self):
    return DAGImplementation.contains_cycles(self)

def _dag_structure(self):
    return DAGImplementation.structure(self)

def _dag_format(self):
    return DAGImplementation.format_dag(self)

DAG.get_variable = _dag_get_variable
DAG.get_parent_set = _dag_get_parent_set
DAG.roots = _dag_roots
DAG.children_of = _dag_children_of
DAG.contains_cycles = _dag_contains_cycles
DAG.structure = _dag_structure
DAG.__str__ = _dag_format


def validate_naive_bayes(dag: DAG) -> Variable:
    """Check the naive Bayes invariant and return the class variable"""
    # Exactly one variable without parents
    roots = dag.roots()
    if len(roots) != 1:
        raise InvalidStructure("expected exactly one class variable")

    # The class variable must be discrete
    class_var = roots[0]
    if not class_var.is_discrete:
        raise InvalidStructure("class variable must be discrete")

    # Every other variable hangs off the class variable alone
    for var in dag.variables:
        if var == class_var:
            continue
        parents = dag.get_parent_set(var).parents
        if len(parents) != 1 or parents[0] != class_var:
            raise InvalidStructure("non-naive-bayes structure")

    return class_var


def default_class_name(schema: Schema) -> Optional[str]:
    """Last discrete attribute of the schema"""
    discrete = schema.discrete_attributes()
    return discrete[-1].name if discrete else None


def naive_bayes_dag(schema: Schema, class_name: Optional[str] = None,
                    topic_count: int = 1) -> DAG:
    """Every attribute is a child of the class attribute"""
    if class_name is None:
        class_name = default_class_name(schema)
    if class_name is None or class_name not in schema:
        raise InvalidConfiguration(f"Unknown class variable {class_name}")

    dag = DAG(schema.variables())
    class_var = dag.get_variable(class_name)
    for var in dag.variables:
        if var != class_var:
            dag.get_parent_set(var).add_parent(class_var)
    return dag


def latent_mixture_dag(schema: Schema, class_name: Optional[str] = None,
                       topic_count: int = 1) -> DAG:
    """Every attribute is a child of a hidden discrete variable with topic_count states"""
    if topic_count < 1:
        raise InvalidConfiguration(f"Topic count must be >= 1, got {topic_count}")
    if HIDDEN_VAR_NAME in schema:
        raise InvalidConfiguration(f"Attribute name {HIDDEN_VAR_NAME} is reserved")

    hidden = Variable(
        name=HIDDEN_VAR_NAME,
        origin=schema.origin,
        kind=AttributeKind.DISCRETE,
        cardinality=topic_count
    )
    dag = DAG([hidden] + schema.variables())
    for var in dag.variables[1:]:
        dag.get_parent_set(var).add_parent(hidden)
    return dag


@dataclass(frozen=True)
class DAGFamily:
    """DAG-building strategy of one classifier family"""
    build: Callable[..., DAG]
    observed_class: bool  # Class variable is a schema attribute


DAG_FAMILIES: Dict[str, DAGFamily] = {
    'naive_bayes': DAGFamily(naive_bayes_dag, observed_class=True),
    'latent_mixture': DAGFamily(latent_mixture_dag, observed_class=False),
}


def get_family(family: str) -> DAGFamily:
    if family not in DAG_FAMILIES:
        raise InvalidConfiguration(
            f"Unknown model family {family!r}, expected one of {sorted(DAG_FAMILIES)}"
        )
    return DAG_FAMILIES[family]


def build_dag(schema: Schema, class_name: Optional[str] = None,
              family: str = 'naive_bayes', topic_count: int = 1) -> DAG:
    """Build the DAG of a family over the schema's variables"""
    return get_family(family).build(schema, class_name, topic_count)
