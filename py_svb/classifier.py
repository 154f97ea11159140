"""Structural classifiers: a family DAG, its class variable and a learner"""

from dataclasses import dataclass, field
from typing import Optional, Union
import numpy as np

from .dag import build_dag, default_class_name, get_family, validate_naive_bayes
from .data import DataBatch
from .definitions import DAG, Schema, Variable
from .exceptions import InvalidConfiguration, InvalidStructure
from .learner import IncrementalLearner, LearnerStatus, StreamingVariationalBayes
from .posterior import BayesianNetworkModel


@dataclass
class StructuralClassifier:
    """Classifier whose structure is fixed by a DAG family.

    Built either from a schema (the family builds the DAG) or from a given
    DAG, directly or through from_existing_model(); a given DAG is validated
    against the naive Bayes invariant. Latent families name their own hidden
    class variable, so class_name must be left unset for them.
    """
    schema: Schema
    class_name: Optional[str] = None           # Defaults to the last discrete attribute
    family: str = 'naive_bayes'                # Key into DAG_FAMILIES
    topic_count: int = 1                       # States of the hidden variable, latent families only
    learner: Optional[IncrementalLearner] = None
    dag: Optional[DAG] = None
    error_message: Optional[str] = field(init=False, default=None)

    def __post_init__(self):
        """Validate the schema and build the family DAG"""
        if self.learner is None:
            self.learner = StreamingVariationalBayes()

        if self.dag is not None:
            class_var = validate_naive_bayes(self.dag)
            if self.class_name is not None and self.class_name != class_var.name:
                raise InvalidStructure(
                    f"class variable is {class_var.name}, not {self.class_name}"
                )
            self.class_name = class_var.name
        else:
            family = get_family(self.family)
            if not family.observed_class and self.class_name is not None:
                self.error_message = f"family {self.family} has a hidden class variable"
                raise InvalidConfiguration(self.error_message)
            if family.observed_class:
                if not self.is_valid_configuration():
                    raise InvalidConfiguration(self.error_message)
                if self.class_name is None:
                    self.class_name = default_class_name(self.schema)
                if self.class_name not in self.schema:
                    self.error_message = f"Unknown class variable {self.class_name}"
                    raise InvalidConfiguration(self.error_message)
                if not self.schema.get_attribute(self.class_name).is_discrete:
                    self.error_message = f"class variable {self.class_name} must be discrete"
                    raise InvalidConfiguration(self.error_message)
            self.dag = self.build_dag()
            self.class_name = self.dag.roots()[0].name

        self.learner.set_dag(self.dag)

    @classmethod
    def from_existing_model(cls, schema: Schema, model: Union[DAG, BayesianNetworkModel],
                            class_name_hint: Optional[str] = None,
                            learner: Optional[IncrementalLearner] = None) -> "StructuralClassifier":
        """Wrap a previously built DAG or learnt model with a naive Bayes structure"""
        dag = model.dag if isinstance(model, BayesianNetworkModel) else model
        return cls(schema, class_name=class_name_hint, learner=learner, dag=dag)

    def build_dag(self, schema: Optional[Schema] = None,
                  class_name: Optional[str] = None) -> DAG:
        """DAG of this classifier's family over the schema"""
        return build_dag(
            schema if schema is not None else self.schema,
            class_name if class_name is not None else self.class_name,
            family=self.family,
            topic_count=self.topic_count
        )

    def is_valid_configuration(self, schema: Optional[Schema] = None) -> bool:
        """Check the schema contains at least one discrete attribute"""
        schema = schema if schema is not None else self.schema
        if not schema.discrete_attributes():
            self.error_message = "at least one discrete variable required"
            return False
        return True

    @property
    def class_var(self) -> Variable:
        return self.dag.get_variable(self.class_name)

    def update_model(self, batch: DataBatch) -> Optional[float]:
        """Fold a batch into the learner, initialising it on first use"""
        if self.learner.status is LearnerStatus.UNINITIALIZED:
            self.learner.init_learning(self.dag)
        return self.learner.update(batch)

    def predict_proba(self, batch: DataBatch) -> np.ndarray:
        """Class posterior of every instance given its other attributes"""
        return self.learner.class_probabilities(batch)

    def predict(self, batch: DataBatch) -> np.ndarray:
        """Most probable class state of every instance"""
        return np.argmax(self.predict_proba(batch), axis=1)

    def get_model(self) -> BayesianNetworkModel:
        return self.learner.current_model()

    def __str__(self):
        return f"{type(self).__name__}({self.family}, class={self.class_name})\n{self.dag}"
