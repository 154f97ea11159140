"""Implementation of Schema operations: YAML loading, lookups and variables"""

from pathlib import Path
from typing import Dict, List, Mapping, Optional, Union
import yaml

from .definitions import AttributeDefinition, AttributeKind, Schema, Variable


class SchemaImplementation:
    """Implementation class for Schema operations"""

    @staticmethod
    def from_dict(config: Mapping, origin: str = "schema") -> Schema:
        """Create Schema from a mapping shaped like the YAML file"""
        if 'attributes' not in config:
            raise ValueError("Schema definition needs an 'attributes' section")

        schema = Schema(origin=origin)
        for name, info in config['attributes'].items():
            info = info or {}
            states = info.get('states')
            attribute = AttributeDefinition(
                name=str(name),
                kind=info.get('kind', AttributeKind.DISCRETE),
                cardinality=info.get('cardinality'),
                states=tuple(states) if states is not None else None
            )
            schema.add_attribute(attribute)
        return schema

    @staticmethod
    def from_yaml(yaml_path: Union[str, Path]) -> Schema:
        """Create Schema from YAML attribute definitions file"""
        with open(yaml_path) as f:
            config = yaml.safe_load(f)
        if not isinstance(config, Mapping):
            raise ValueError(f"Schema file {yaml_path} is empty or malformed")
        return SchemaImplementation.from_dict(config, origin=str(Path(yaml_path)))

    @staticmethod
    def add_attribute(schema: Schema, attribute: AttributeDefinition) -> None:
        """Append an attribute definition"""
        if attribute.name in schema.names():
            raise ValueError(f"Duplicate attribute {attribute.name}")
        schema.attributes.append(attribute)

    @staticmethod
    def names(schema: Schema) -> List[str]:
        return [a.name for a in schema.attributes]

    @staticmethod
    def get_attribute(schema: Schema, name: str) -> AttributeDefinition:
        """Look up an attribute by name"""
        for attribute in schema.attributes:
            if attribute.name == name:
                return attribute
        raise KeyError(f"Unknown attribute {name}")

    @staticmethod
    def index_of(schema: Schema, name: str) -> int:
        """Column position of an attribute"""
        for i, attribute in enumerate(schema.attributes):
            if attribute.name == name:
                return i
        raise KeyError(f"Unknown attribute {name}")

    @staticmethod
    def discrete_attributes(schema: Schema) -> List[AttributeDefinition]:
        return [a for a in schema.attributes if a.is_discrete]

    @staticmethod
    def variables(schema: Schema) -> List[Variable]:
        """One model variable per attribute, in schema order"""
        return [
            Variable(
                name=a.name,
                origin=schema.origin,
                kind=a.kind,
                cardinality=a.cardinality,
                index=i
            )
            for i, a in enumerate(schema.attributes)
        ]

    @staticmethod
    def state_index(schema: Schema) -> Dict[str, Optional[Dict[str, int]]]:
        """Label-to-code maps for discrete attributes declared with states"""
        return {
            a.name: ({label: code for code, label in enumerate(a.states)}
                     if a.states else None)
            for a in schema.attributes
        }

    @staticmethod
    def format_schema(schema: Schema) -> str:
        parts = []
        for a in schema.attributes:
            if a.is_discrete:
                parts.append(f"{a.name}(discrete, {a.cardinality})")
            else:
                parts.append(f"{a.name}(continuous)")
        return ", ".join(parts)


# Add implementation methods to Schema class
@classmethod
def _schema_from_yaml(cls, yaml_path):
    """Create from YAML file"""
    return SchemaImplementation.from_yaml(yaml_path)

@classmethod
def _schema_from_dict(cls, config, origin="schema"):
    """Create from mapping"""
    return SchemaImplementation.from_dict(config, origin)

def _schema_add_attribute(self, attribute):
    return SchemaImplementation.add_attribute(self, attribute)

def _schema_names(self):
    return SchemaImplementation.names(self)

def _schema_get_attribute(self, name):
    return SchemaImplementation.get_attribute(self, name)

def _schema_index_of(self, name):
    return SchemaImplementation.index_of(self, name)

def _schema_discrete_attributes(self):
    return SchemaImplementation.discrete_attributes(self)

def _schema_variables(self):
    return SchemaImplementation.variables(self)

def _schema_state_index(self):
    return SchemaImplementation.state_index(self)

def _schema_len(self):
    return len(self.attributes)

def _schema_contains(self, name):
    return name in SchemaImplementation.names(self)

def _schema_format(self):
    return SchemaImplementation.format_schema(self)

Schema.from_yaml = _schema_from_yaml
Schema.from_dict = _schema_from_dict
Schema.add_attribute = _schema_add_attribute
Schema.names = _schema_names
Schema.get_attribute = _schema_get_attribute
Schema.index_of = _schema_index_of
Schema.discrete_attributes = _schema_discrete_attributes
Schema.variables = _schema_variables
Schema.state_index = _schema_state_index
Schema.__len__ = _schema_len
Schema.__contains__ = _schema_contains
Schema.__str__ = _schema_format
