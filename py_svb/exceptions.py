"""Error types raised by the streaming VB harness"""


class SVBError(Exception):
    """Base class for all harness errors"""


class InvalidStructure(SVBError, ValueError):
    """DAG does not match the structural invariant of a classifier family"""


class InvalidConfiguration(SVBError, ValueError):
    """Schema or run settings unsuitable for the requested classifier"""


class LearnerNotReady(SVBError, RuntimeError):
    """Learner used before init_learning() was called"""


class SourceReadFailure(SVBError, IOError):
    """Data file could not be read or parsed"""
