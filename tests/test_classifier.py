"""Tests for structural classifiers and naive Bayes validation"""
import numpy as np
import pytest

from py_svb import (DAG, InvalidConfiguration, InvalidStructure, LearnerStatus,
                    StreamingVariationalBayes, StructuralClassifier, build_dag)


def test_default_class(mixed_schema):
    classifier = StructuralClassifier(mixed_schema)

    assert classifier.class_name == 'X1'
    assert classifier.class_var.name == 'X1'
    assert classifier.dag.structure() == {'C': ['X1'], 'X1': [], 'X2': ['X1']}
    assert classifier.learner.dag is classifier.dag
    assert classifier.learner.status is LearnerStatus.UNINITIALIZED


def test_explicit_class(mixed_schema):
    classifier = StructuralClassifier(mixed_schema, class_name='C')

    assert [v.name for v in classifier.dag.roots()] == ['C']
    assert "class=C" in str(classifier)


def test_valid_configuration(mixed_schema, continuous_schema):
    classifier = StructuralClassifier(mixed_schema)

    assert classifier.is_valid_configuration()
    assert classifier.error_message is None
    assert not classifier.is_valid_configuration(continuous_schema)
    assert classifier.error_message == "at least one discrete variable required"


def test_all_continuous_schema(continuous_schema):
    with pytest.raises(InvalidConfiguration, match="at least one discrete variable required"):
        StructuralClassifier(continuous_schema)


@pytest.mark.parametrize("class_name, message", [
    ('X2', "must be discrete"),
    ('Missing', "Unknown class variable"),
])
def test_invalid_class(mixed_schema, class_name, message):
    with pytest.raises(InvalidConfiguration, match=message):
        StructuralClassifier(mixed_schema, class_name=class_name)


def test_latent_mixture_family(continuous_schema):
    classifier = StructuralClassifier(continuous_schema, family='latent_mixture', topic_count=4)

    assert classifier.class_name == 'HiddenVar'
    assert classifier.class_var.cardinality == 4
    assert not classifier.class_var.is_observed


def test_from_existing_dag(mixed_schema):
    dag = build_dag(mixed_schema, 'C')
    classifier = StructuralClassifier.from_existing_model(mixed_schema, dag, class_name_hint='C')

    assert classifier.dag is dag
    assert classifier.class_name == 'C'


def test_from_existing_learnt_model(mixed_schema, make_batch):
    source = StructuralClassifier(mixed_schema, class_name='C')
    source.update_model(make_batch(30))
    classifier = StructuralClassifier.from_existing_model(mixed_schema, source.get_model())

    assert classifier.class_name == 'C'
    assert classifier.dag.structure() == source.dag.structure()


def _no_edges(schema):
    return DAG(schema.variables())


def _cycle(schema):
    dag = DAG(schema.variables())
    c, x1, x2 = dag.variables
    dag.get_parent_set(c).add_parent(x1)
    dag.get_parent_set(x1).add_parent(c)
    dag.get_parent_set(x2).add_parent(c)
    return dag


def _extra_edge(schema):
    dag = build_dag(schema, 'C')
    dag.get_parent_set('X2').add_parent(dag.get_variable('X1'))
    return dag


def _chain(schema):
    dag = DAG(schema.variables())
    c, x1, x2 = dag.variables
    dag.get_parent_set(x1).add_parent(c)
    dag.get_parent_set(x2).add_parent(x1)
    return dag


@pytest.mark.parametrize("make_dag, message", [
    (_no_edges, "expected exactly one class variable"),
    (_cycle, "expected exactly one class variable"),
    (lambda schema: build_dag(schema, 'X2'), "class variable must be discrete"),
    (_extra_edge, "non-naive-bayes structure"),
    (_chain, "non-naive-bayes structure"),
])
def test_from_existing_model_rejects(mixed_schema, make_dag, message):
    with pytest.raises(InvalidStructure, match=message):
        StructuralClassifier.from_existing_model(mixed_schema, make_dag(mixed_schema))


def test_from_existing_model_hint_mismatch(mixed_schema):
    with pytest.raises(InvalidStructure):
        StructuralClassifier.from_existing_model(
            mixed_schema, build_dag(mixed_schema, 'C'), class_name_hint='X1'
        )


def test_update_and_predict(mixed_schema, make_batch):
    learner = StreamingVariationalBayes(window_size=50)
    classifier = StructuralClassifier(mixed_schema, class_name='C', learner=learner)

    classifier.update_model(make_batch(300, seed=1))
    test = make_batch(100, seed=2)
    predicted = classifier.predict(test)

    assert learner.status is LearnerStatus.READY
    assert predicted.shape == (100,)
    assert np.mean(predicted == test.column('C')) > 0.85
    np.testing.assert_allclose(classifier.predict_proba(test).sum(axis=1), 1.0)


def test_get_model(mixed_schema, make_batch):
    classifier = StructuralClassifier(mixed_schema, class_name='C')
    classifier.update_model(make_batch(20))

    text = str(classifier.get_model())
    assert text.startswith("Bayesian Network:")
    assert "P(X1 | C)" in text


def test_given_dag_is_validated(mixed_schema):
    with pytest.raises(InvalidStructure, match="non-naive-bayes structure"):
        StructuralClassifier(mixed_schema, dag=_chain(mixed_schema))


def test_given_dag_binds_class(mixed_schema):
    classifier = StructuralClassifier(mixed_schema, dag=build_dag(mixed_schema, 'C'))

    assert classifier.class_name == 'C'
    with pytest.raises(InvalidStructure):
        StructuralClassifier(mixed_schema, class_name='X1', dag=build_dag(mixed_schema, 'C'))


def test_latent_family_rejects_class_name(mixed_schema):
    with pytest.raises(InvalidConfiguration, match="hidden class variable"):
        StructuralClassifier(mixed_schema, class_name='C', family='latent_mixture')
