# Kieran Owens 2025
# ssatools results

# Contains:
# Results - projections, bases, losses and provenance of an SSA run

from dataclasses import dataclass
from typing import Optional

import numpy as np

from ssatools.parameters import SSAParameters


@dataclass(frozen=True)
class Results:
    """
    Results of the SSA algorithm.

    Attributes
    ----------
    Ps: ndarray, shape (d, n_features)
        Projection matrix to the estimated stationary subspace.

    Pn: ndarray, shape (n_features - d, n_features)
        Projection matrix to the estimated non-stationary subspace.

    Bs: ndarray, shape (n_features, d)
        Matrix whose columns span the estimated stationary subspace.

    Bn: ndarray, shape (n_features, n_features - d)
        Matrix whose columns span the estimated non-stationary subspace.

    loss: float
        Normalised loss of a single optimisation run.

    loss_s, loss_n: float
        Normalised losses of the stationary and non-stationary sources.

    iterations: int
        Number of iterations of a single optimisation run.

    iterations_s, iterations_n: int
        Iterations of the best run of the stationary and the
        non-stationary phase.

    converged: bool
        Whether the optimisation converged.

    params: SSAParameters
        The parameters that were used.

    epoch_type: str
        How the epochs were defined.

    n_equal_epochs: int
        Number of equally sized epochs, or 0 if another epoch type was used.

    eigenvalues: ndarray or None
        Eigenvalues of the mean-only eigenvalue problem, ascending.
    """

    Ps: np.ndarray
    Pn: np.ndarray
    Bs: np.ndarray
    Bn: np.ndarray
    loss: float = 0.0
    converged: bool = False
    iterations: int = 0
    params: Optional[SSAParameters] = None
    epoch_type: Optional[str] = None
    n_equal_epochs: int = 0
    loss_s: float = 0.0
    loss_n: float = 0.0
    iterations_s: int = 0
    iterations_n: int = 0
    eigenvalues: Optional[np.ndarray] = None

    @property
    def d(self):
        return self.Ps.shape[0]

    @property
    def demixing(self):
        """Stacked projections [Ps; Pn]."""
        return np.vstack([self.Ps, self.Pn])

    @property
    def mixing(self):
        """Stacked bases [Bs Bn], the inverse of the demixing matrix."""
        return np.hstack([self.Bs, self.Bn])

    def stationary_sources(self, X):
        """Project X, shape (n_samples, n_features), on the stationary subspace."""
        return np.asarray(X) @ self.Ps.T

    def nonstationary_sources(self, X):
        """Project X, shape (n_samples, n_features), on the non-stationary subspace."""
        return np.asarray(X) @ self.Pn.T
