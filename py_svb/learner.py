"""Incremental learners: the capability interface and streaming variational Bayes"""

import copy
import warnings
from abc import ABC, abstractmethod
from enum import Enum
from typing import List, Optional
import numpy as np

from .data import DataBatch
from .definitions import DAG
from .exceptions import InvalidConfiguration, LearnerNotReady
from .posterior import BayesianNetworkModel, PosteriorState


class LearnerStatus(Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    LEARNING = "learning"


class IncrementalLearner(ABC):
    """Stateful learner folding batches window by window into a posterior.

    Subclasses supply the numerical state; this class owns the status
    machine and regroups every batch into windows of at most window_size
    instances, so update() is not atomic across a batch larger than a window.
    """

    def __init__(self, window_size: int = 1000, verbose: bool = False):
        if window_size < 1:
            raise InvalidConfiguration(f"Window size must be >= 1, got {window_size}")
        self.window_size = window_size
        self.verbose = verbose
        self.dag: Optional[DAG] = None
        self.status = LearnerStatus.UNINITIALIZED

    def set_dag(self, dag: DAG) -> None:
        """Bind a DAG without creating state"""
        self.dag = dag

    def init_learning(self, dag: Optional[DAG] = None) -> None:
        """(Re)create the learner state, discarding any previous one"""
        dag = dag if dag is not None else self.dag
        if dag is None:
            raise LearnerNotReady("No DAG to initialise learning with")
        self._reset(dag)
        self.dag = dag
        self.status = LearnerStatus.READY

    def _check_ready(self, operation: str) -> None:
        if self.status is LearnerStatus.UNINITIALIZED:
            raise LearnerNotReady(f"{operation}() called before init_learning()")

    def random_initialize(self, seed: Optional[int] = None) -> None:
        """Randomise the variational starting point, deterministic per seed"""
        self._check_ready('random_initialize')
        self._randomize(np.random.default_rng(seed))

    def update(self, batch: DataBatch) -> Optional[float]:
        """Fold a batch window by window; returns the last window's ELBO"""
        self._check_ready('update')
        self.status = LearnerStatus.LEARNING
        elbo = None
        try:
            for window in batch.iter_batches(self.window_size):
                elbo = self._fold(window)
        finally:
            self.status = LearnerStatus.READY
        return elbo

    def predictive_log_likelihood(self, batch: DataBatch) -> float:
        """Sum of per-instance log-likelihoods under the current posterior"""
        self._check_ready('predictive_log_likelihood')
        return float(sum(self._log_likelihood(window)
                         for window in batch.iter_batches(self.window_size)))

    def class_probabilities(self, batch: DataBatch) -> np.ndarray:
        """Posterior class distribution of every instance"""
        self._check_ready('class_probabilities')
        windows = [self._class_probabilities(w) for w in batch.iter_batches(self.window_size)]
        if not windows:
            return np.empty((0, self.current_model().parameters.n_states))
        return np.vstack(windows)

    def current_model(self) -> BayesianNetworkModel:
        self._check_ready('current_model')
        return self._snapshot()

    @abstractmethod
    def _reset(self, dag: DAG) -> None:
        """Create fresh state for dag"""

    @abstractmethod
    def _randomize(self, rng: np.random.Generator) -> None:
        """Perturb the starting point of the next fold"""

    @abstractmethod
    def _fold(self, window: DataBatch) -> float:
        """Fold one window into the state"""

    @abstractmethod
    def _log_likelihood(self, window: DataBatch) -> float:
        """Sum of log-likelihoods of one window"""

    @abstractmethod
    def _class_probabilities(self, window: DataBatch) -> np.ndarray:
        """Class distribution per instance of one window"""

    @abstractmethod
    def _snapshot(self) -> BayesianNetworkModel:
        """Copy of the DAG and parameters"""


class StreamingVariationalBayes(IncrementalLearner):
    """Streaming VB: each window runs coordinate ascent on the ELBO starting
    from the current posterior, then the posterior becomes the prior of the
    next window."""

    def __init__(self, window_size: int = 1000, max_iterations: int = 100,
                 convergence_threshold: float = 0.1, elbo_tracking: bool = False,
                 seed: Optional[int] = 1, verbose: bool = False):
        super().__init__(window_size=window_size, verbose=verbose)
        if max_iterations < 1:
            raise InvalidConfiguration(f"Max iterations must be >= 1, got {max_iterations}")
        if not convergence_threshold > 0:
            raise InvalidConfiguration(
                f"Convergence threshold must be > 0, got {convergence_threshold}"
            )
        self.max_iterations = max_iterations
        self.convergence_threshold = convergence_threshold
        self.elbo_tracking = elbo_tracking
        self.elbo_trace: List[float] = []
        self.windows_seen = 0
        self._rng = np.random.default_rng(seed)   # Hidden-class starting points drawn on every reset
        self._prior: Optional[PosteriorState] = None
        self._posterior: Optional[PosteriorState] = None

    def _reset(self, dag: DAG) -> None:
        self._prior = PosteriorState.from_dag(dag)
        if self._prior.class_var.is_observed:
            self._posterior = self._prior.copy()
        else:
            self._posterior = self._prior.perturbed(self._rng)
        self.elbo_trace = []
        self.windows_seen = 0

    def _randomize(self, rng: np.random.Generator) -> None:
        self._posterior = self._prior.perturbed(rng)

    def _fold(self, window: DataBatch) -> float:
        values = window.values
        prior = self._prior
        posterior = self._posterior
        elbo = -np.inf

        for iteration in range(1, self.max_iterations + 1):
            resp, log_w = posterior.responsibilities(values)
            new_elbo = posterior.elbo(values, resp, log_w, prior)
            posterior = prior.updated(values, resp)

            if self.elbo_tracking:
                self.elbo_trace.append(new_elbo)
                if new_elbo < elbo - 1e-6 * abs(elbo):
                    warnings.warn(
                        f"ELBO decreased from {elbo:.6f} to {new_elbo:.6f}",
                        RuntimeWarning
                    )

            converged = abs(new_elbo - elbo) < self.convergence_threshold
            elbo = new_elbo
            if converged:
                break

        self._posterior = posterior
        self._prior = posterior.copy()
        self.windows_seen += 1
        if self.verbose:
            print(f"Window {self.windows_seen}: {len(window)} instances, "
                  f"ELBO {elbo:.4f} after {iteration} iterations")
        return elbo

    def _log_likelihood(self, window: DataBatch) -> float:
        return self._posterior.log_likelihood(window.values)

    def _class_probabilities(self, window: DataBatch) -> np.ndarray:
        return self._posterior.class_probabilities(window.values)

    def _snapshot(self) -> BayesianNetworkModel:
        dag, parameters = copy.deepcopy((self.dag, self._posterior))
        return BayesianNetworkModel(dag=dag, parameters=parameters)
