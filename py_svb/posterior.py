"""Conjugate variational posterior over naive-Bayes shaped networks.

The class variable carries a Dirichlet posterior, each discrete child a
Dirichlet per class state and each continuous child a Normal-Gamma per class
state. Per-instance class assignments are mean-field responsibilities, so the
class column may be partly missing or the class variable entirely hidden.
"""

import copy
from dataclasses import dataclass, field
from typing import Dict, List, Tuple
import numpy as np
import scipy.stats as stats
from scipy.special import digamma, gammaln, logsumexp

from .dag import validate_naive_bayes
from .definitions import DAG, Variable
from .exceptions import InvalidStructure

# Prior hyperparameters
PRIOR_ALPHA = 1.0   # Dirichlet pseudo-count per state
PRIOR_MEAN = 0.0    # Normal-Gamma location
PRIOR_KAPPA = 1.0   # Normal-Gamma pseudo-observations for the mean
PRIOR_SHAPE = 1.0   # Gamma shape of the precision
PRIOR_RATE = 1.0    # Gamma rate of the precision


@dataclass
class DirichletParameters:
    """Dirichlet concentrations along the last axis"""
    alpha: np.ndarray

    def expected_log(self) -> np.ndarray:
        """E[log p] under the Dirichlet"""
        return digamma(self.alpha) - digamma(self.alpha.sum(axis=-1, keepdims=True))

    def mean(self) -> np.ndarray:
        return self.alpha / self.alpha.sum(axis=-1, keepdims=True)

    def updated(self, counts: np.ndarray) -> "DirichletParameters":
        return DirichletParameters(self.alpha + counts)

    def perturbed(self, rng: np.random.Generator) -> "DirichletParameters":
        return DirichletParameters(self.alpha + rng.uniform(0.0, 1.0, self.alpha.shape))

    def kl(self, prior: "DirichletParameters") -> float:
        """KL(self || prior) summed over rows"""
        a, b = self.alpha, prior.alpha
        kl = (gammaln(a.sum(axis=-1)) - gammaln(a).sum(axis=-1)
              - gammaln(b.sum(axis=-1)) + gammaln(b).sum(axis=-1)
              + ((a - b) * self.expected_log()).sum(axis=-1))
        return float(np.sum(kl))


@dataclass
class NormalGammaParameters:
    """Normal-Gamma posterior over (mean, precision), one entry per class state"""
    mean: np.ndarray
    kappa: np.ndarray
    shape: np.ndarray
    rate: np.ndarray

    @classmethod
    def prior(cls, n_states: int) -> "NormalGammaParameters":
        return cls(
            mean=np.full(n_states, PRIOR_MEAN),
            kappa=np.full(n_states, PRIOR_KAPPA),
            shape=np.full(n_states, PRIOR_SHAPE),
            rate=np.full(n_states, PRIOR_RATE)
        )

    def expected_log_density(self, y: np.ndarray) -> np.ndarray:
        """E[log N(y | mu, 1/lambda)] for every value and class state, shape (n, k)"""
        diff = y[:, None] - self.mean[None, :]
        expected_log_precision = digamma(self.shape) - np.log(self.rate)
        return 0.5 * (expected_log_precision - np.log(2 * np.pi)
                      - self.shape / self.rate * diff ** 2 - 1.0 / self.kappa)

    def predictive_logpdf(self, y: np.ndarray) -> np.ndarray:
        """Student-t posterior predictive log-density, shape (n, k)"""
        scale = np.sqrt(self.rate * (self.kappa + 1.0) / (self.shape * self.kappa))
        return stats.t.logpdf(y[:, None], df=2.0 * self.shape, loc=self.mean, scale=scale)

    def updated(self, weight: np.ndarray, first: np.ndarray,
                second: np.ndarray) -> "NormalGammaParameters":
        """Fold weighted count, sum and sum of squares into the parameters"""
        kappa = self.kappa + weight
        mean = (self.kappa * self.mean + first) / kappa
        shape = self.shape + 0.5 * weight
        rate = self.rate + 0.5 * (second + self.kappa * self.mean ** 2 - kappa * mean ** 2)
        return NormalGammaParameters(mean, kappa, shape, rate)

    def perturbed(self, rng: np.random.Generator) -> "NormalGammaParameters":
        return NormalGammaParameters(
            self.mean + rng.normal(0.0, 1.0, self.mean.shape),
            self.kappa.copy(), self.shape.copy(), self.rate.copy()
        )

    def variance(self) -> np.ndarray:
        """Posterior expected variance"""
        return np.where(self.shape > 1.0, self.rate / np.maximum(self.shape - 1.0, 1e-12),
                        self.rate / self.shape)

    def kl(self, prior: "NormalGammaParameters") -> float:
        """KL(self || prior) summed over class states"""
        gamma = ((self.shape - prior.shape) * digamma(self.shape)
                 - gammaln(self.shape) + gammaln(prior.shape)
                 + prior.shape * (np.log(self.rate) - np.log(prior.rate))
                 + self.shape * (prior.rate - self.rate) / self.rate)
        ratio = prior.kappa / self.kappa
        normal = 0.5 * (ratio - 1.0 - np.log(ratio)
                        + prior.kappa * self.shape / self.rate * (self.mean - prior.mean) ** 2)
        return float(np.sum(gamma + normal))


@dataclass
class PosteriorState:
    """Variational parameters of every CPD of a naive-Bayes shaped DAG"""
    class_var: Variable
    children: List[Variable]
    root: DirichletParameters
    discrete: Dict[str, DirichletParameters] = field(default_factory=dict)
    continuous: Dict[str, NormalGammaParameters] = field(default_factory=dict)

    @classmethod
    def from_dag(cls, dag: DAG) -> "PosteriorState":
        """Prior state for a DAG with one discrete root and children of the root"""
        if dag.contains_cycles():
            raise InvalidStructure("DAG contains cycles")
        class_var = validate_naive_bayes(dag)
        n_states = class_var.cardinality

        state = cls(
            class_var=class_var,
            children=[v for v in dag.variables if v != class_var],
            root=DirichletParameters(np.full(n_states, PRIOR_ALPHA))
        )
        for var in state.children:
            if not var.is_observed:
                raise InvalidStructure(f"Hidden variable {var.name} must be the class variable")
            if var.is_discrete:
                state.discrete[var.name] = DirichletParameters(
                    np.full((n_states, var.cardinality), PRIOR_ALPHA)
                )
            else:
                state.continuous[var.name] = NormalGammaParameters.prior(n_states)
        return state

    @property
    def n_states(self) -> int:
        return self.class_var.cardinality

    def copy(self) -> "PosteriorState":
        return copy.deepcopy(self)

    def _class_labels(self, values: np.ndarray):
        if not self.class_var.is_observed:
            return None
        return values[:, self.class_var.index]

    def _log_weights(self, values: np.ndarray, predictive: bool) -> np.ndarray:
        """Unnormalised log weight of each class state per instance, shape (n, k)"""
        root = np.log(self.root.mean()) if predictive else self.root.expected_log()
        log_w = np.tile(root, (values.shape[0], 1))

        for var in self.children:
            column = values[:, var.index]
            observed = ~np.isnan(column)
            if not observed.any():
                continue
            if var.is_discrete:
                params = self.discrete[var.name]
                table = np.log(params.mean()) if predictive else params.expected_log()
                log_w[observed] += table[:, column[observed].astype(int)].T
            else:
                params = self.continuous[var.name]
                y = column[observed]
                log_w[observed] += (params.predictive_logpdf(y) if predictive
                                    else params.expected_log_density(y))
        return log_w

    def responsibilities(self, values: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Mean-field class posteriors and the log weights they came from"""
        log_w = self._log_weights(values, predictive=False)
        resp = np.exp(log_w - logsumexp(log_w, axis=1, keepdims=True))

        labels = self._class_labels(values)
        if labels is not None:
            observed = ~np.isnan(labels)
            resp[observed] = np.eye(self.n_states)[labels[observed].astype(int)]
        return resp, log_w

    def updated(self, values: np.ndarray, resp: np.ndarray) -> "PosteriorState":
        """Posterior obtained by adding expected sufficient statistics to this state"""
        state = PosteriorState(
            class_var=self.class_var,
            children=self.children,
            root=self.root.updated(resp.sum(axis=0))
        )
        for var in self.children:
            column = values[:, var.index]
            observed = ~np.isnan(column)
            weights = resp[observed]
            if var.is_discrete:
                onehot = np.eye(var.cardinality)[column[observed].astype(int)]
                state.discrete[var.name] = self.discrete[var.name].updated(weights.T @ onehot)
            else:
                y = column[observed]
                state.continuous[var.name] = self.continuous[var.name].updated(
                    weights.sum(axis=0), weights.T @ y, weights.T @ (y ** 2)
                )
        return state

    def elbo(self, values: np.ndarray, resp: np.ndarray, log_w: np.ndarray,
             prior: "PosteriorState") -> float:
        """Evidence lower bound of a window under this state"""
        positive = resp > 0
        local = np.sum(resp * log_w) - np.sum(resp[positive] * np.log(resp[positive]))
        kl = self.root.kl(prior.root)
        kl += sum(p.kl(prior.discrete[name]) for name, p in self.discrete.items())
        kl += sum(p.kl(prior.continuous[name]) for name, p in self.continuous.items())
        return float(local - kl)

    def perturbed(self, rng: np.random.Generator) -> "PosteriorState":
        """Randomised starting point with the same structure"""
        return PosteriorState(
            class_var=self.class_var,
            children=self.children,
            root=self.root.perturbed(rng),
            discrete={name: p.perturbed(rng) for name, p in self.discrete.items()},
            continuous={name: p.perturbed(rng) for name, p in self.continuous.items()}
        )

    def log_likelihood(self, values: np.ndarray) -> float:
        """Sum of posterior-predictive log-densities of the instances"""
        if values.shape[0] == 0:
            return 0.0
        log_w = self._log_weights(values, predictive=True)
        per_instance = logsumexp(log_w, axis=1)

        labels = self._class_labels(values)
        if labels is not None:
            observed = ~np.isnan(labels)
            rows = np.flatnonzero(observed)
            per_instance[rows] = log_w[rows, labels[observed].astype(int)]
        return float(per_instance.sum())

    def class_probabilities(self, values: np.ndarray) -> np.ndarray:
        """Predictive class distribution per instance, class column ignored"""
        log_w = self._log_weights(values, predictive=True)
        return np.exp(log_w - logsumexp(log_w, axis=1, keepdims=True))


def _format_probabilities(p: np.ndarray) -> str:
    return "[ " + ", ".join(f"{x:.4f}" for x in p) + " ]"


@dataclass
class BayesianNetworkModel:
    """Read-only snapshot of a DAG and its posterior parameters"""
    dag: DAG
    parameters: PosteriorState

    def __str__(self):
        params = self.parameters
        class_name = params.class_var.name
        lines = ["Bayesian Network:"]
        lines.append(f"P({class_name}) follows a Multinomial")
        lines.append(f"  {_format_probabilities(params.root.mean())}")

        for var in params.children:
            if var.is_discrete:
                lines.append(f"P({var.name} | {class_name}) follows a Multinomial|Multinomial")
                for state, row in enumerate(params.discrete[var.name].mean()):
                    lines.append(f"  {class_name} = {state}: {_format_probabilities(row)}")
            else:
                normal = params.continuous[var.name]
                lines.append(f"P({var.name} | {class_name}) follows a Normal|Multinomial")
                for state, (mu, var_) in enumerate(zip(normal.mean, normal.variance())):
                    lines.append(f"  {class_name} = {state}: Normal [ mu = {mu:.4f}, var = {var_:.4f} ]")
        return "\n".join(lines)
