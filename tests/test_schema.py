"""Tests for attribute definitions and schemas"""
import pytest

from py_svb import AttributeDefinition, AttributeKind, Schema


def test_from_yaml(test_data_dir):
    schema = Schema.from_yaml(test_data_dir / "schema.yml")

    assert schema.names() == ['Outcome', 'Grade', 'Score']
    assert schema.get_attribute('Outcome').states == ('neg', 'pos')
    assert schema.get_attribute('Outcome').cardinality == 2
    assert schema.get_attribute('Grade').cardinality == 3
    assert schema.get_attribute('Score').kind is AttributeKind.CONTINUOUS
    assert schema.origin.endswith("schema.yml")


def test_lookups(mixed_schema):
    assert len(mixed_schema) == 3
    assert 'X1' in mixed_schema
    assert 'Y' not in mixed_schema
    assert mixed_schema.index_of('X2') == 2
    assert [a.name for a in mixed_schema.discrete_attributes()] == ['C', 'X1']
    with pytest.raises(KeyError):
        mixed_schema.get_attribute('Y')


def test_duplicate_attribute(mixed_schema):
    with pytest.raises(ValueError):
        mixed_schema.add_attribute(AttributeDefinition('C', 'discrete', 2))
    with pytest.raises(ValueError):
        Schema([AttributeDefinition('A', 'continuous'), AttributeDefinition('A', 'continuous')])


@pytest.mark.parametrize("kwargs", [
    dict(name='A', kind='ordinal', cardinality=2),
    dict(name='A', kind='discrete'),
    dict(name='A', kind='discrete', cardinality=0),
    dict(name='A', kind='discrete', cardinality=3, states=('x', 'y')),
    dict(name='A', kind='discrete', states=('x', 'x')),
    dict(name='A', kind='continuous', cardinality=2),
])
def test_invalid_attribute(kwargs):
    with pytest.raises(ValueError):
        AttributeDefinition(**kwargs)


def test_variables_follow_schema(mixed_schema):
    variables = mixed_schema.variables()

    assert [v.name for v in variables] == ['C', 'X1', 'X2']
    assert [v.index for v in variables] == [0, 1, 2]
    assert variables[0].is_discrete and variables[0].cardinality == 2
    assert not variables[2].is_discrete


def test_variable_equality_uses_name_and_origin(mixed_schema):
    same = Schema.from_dict({'attributes': {'C': {'kind': 'discrete', 'cardinality': 5}}},
                            origin="mixed")
    other = Schema.from_dict({'attributes': {'C': {'kind': 'discrete', 'cardinality': 2}}},
                             origin="elsewhere")

    assert mixed_schema.variables()[0] == same.variables()[0]
    assert mixed_schema.variables()[0] != other.variables()[0]
    assert len({mixed_schema.variables()[0], same.variables()[0]}) == 1
