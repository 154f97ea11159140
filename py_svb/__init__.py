"""
py-svb: streaming variational Bayes with restarts for structural classifiers
"""

__version__ = "0.1.0"

# py_svb/__init__.py

from .definitions import AttributeDefinition, AttributeKind, DAG, EvaluationRecord, ParentSet, Schema, Variable
from .exceptions import InvalidConfiguration, InvalidStructure, LearnerNotReady, SourceReadFailure, SVBError
from .schema import SchemaImplementation
from .dag import DAG_FAMILIES, build_dag, validate_naive_bayes
from .data import DataBatch, DataInstance, DataStream, list_data_files, load_batch
from .posterior import BayesianNetworkModel, PosteriorState
from .learner import IncrementalLearner, LearnerStatus, StreamingVariationalBayes
from .classifier import StructuralClassifier
from .records import RecordSink, read_records
from .config import RunConfig
from .restart import StreamingRestartLoop

__all__ = [
    'AttributeDefinition',
    'AttributeKind',
    'BayesianNetworkModel',
    'DAG',
    'DAG_FAMILIES',
    'DataBatch',
    'DataInstance',
    'DataStream',
    'EvaluationRecord',
    'IncrementalLearner',
    'InvalidConfiguration',
    'InvalidStructure',
    'LearnerNotReady',
    'LearnerStatus',
    'ParentSet',
    'PosteriorState',
    'RecordSink',
    'RunConfig',
    'Schema',
    'SchemaImplementation',
    'SourceReadFailure',
    'StreamingRestartLoop',
    'StreamingVariationalBayes',
    'StructuralClassifier',
    'SVBError',
    'Variable',
    'build_dag',
    'list_data_files',
    'load_batch',
    'read_records',
    'validate_naive_bayes',
]
