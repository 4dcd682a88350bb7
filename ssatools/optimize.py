# Kieran Owens 2025
# ssatools manifold optimisation

# Contains:
# optimize_once - one run of conjugate gradient descent over rotations
#                 with backtracking line search

import logging

import numpy as np

from ssatools.config import CONFIG
from ssatools.linalg import LinearAlgebra, random_rotation
from ssatools.objective import (chi2_dof, normalize_gradient, normalize_loss,
                                objective_function)
from ssatools.results import Results

logger = logging.getLogger(__name__)

###############################################################################
###############################################################################
# optimize_once
###############################################################################
###############################################################################

def _inner(A, B):
    # canonical inner product on skew-symmetric matrices
    return 0.5 * np.sum(A * B)


def optimize_once(params, stats, optimize_nonstationary=False, init=None,
                  backend=None, line_search=None, relative_decrease=None):
    """
    Solve the SSA optimisation problem once from a single starting point.

    The demixing matrix B is parameterised as B = expm(M) B_0 where M is
    skew-symmetric. Each iteration evaluates the normalised loss and its
    gradient at the current B, forms a Polak-Ribiere conjugate gradient
    direction, and searches along it with a backtracking line search
    (Armijo rule). The run stops when the line search fails to decrease the
    loss or when the relative decrease falls below a threshold.

    Parameters
    ----------
    params: SSAParameters
        The SSA parameters.

    stats: EpochStatistics
        Epoch moments of the data.

    optimize_nonstationary: bool
        Maximise the non-stationarity of the n-d non-stationary sources
        instead of the stationarity of the d stationary sources.
        Default: False.

    init: ndarray, shape (n_features, n_features) or None
        Initial demixing matrix in the original coordinates. None means a
        random rotation of the whitening matrix.

    backend: LinearAlgebra
        Provider of matrix primitives and random numbers.

    Returns
    -------
    results : Results
        Projections and bases with the stationary subspace always in the
        Ps/Bs slots, the minimum normalised loss (negated if
        optimize_nonstationary) at the returned demixing matrix, the number
        of iterations and whether the run converged.
    """

    if backend is None:
        backend = LinearAlgebra()
    if line_search is None:
        line_search = CONFIG['line_search']
    if relative_decrease is None:
        relative_decrease = CONFIG['convergence']['relative_decrease']

    n = stats.n_dims
    d = n - params.n_stationary if optimize_nonstationary else params.n_stationary
    sign = -1.0 if optimize_nonstationary else 1.0

    if init is None:
        # whitening followed by a random rotation
        B = random_rotation(n, backend) @ stats.whitening
    else:
        B = np.array(init, dtype=float)

    # move epoch moments into the coordinates of B
    S = np.array([B @ S_i @ B.T for S_i in stats.covariances])
    mu = None
    if params.use_mean:
        mu = (stats.means - stats.mean_all) @ B.T

    k = chi2_dof(stats.n_epochs, d, params.use_mean, params.use_covariance)

    grad_old = None
    alpha_old = None
    loss = 0.0
    converged = False
    i = 0
    while True:
        # objective function value and gradient at the current B
        value = objective_function(n, d, S, mu, stats.sizes, None, True, backend)
        loss = sign * normalize_loss(value.loss, k)
        grad = sign * normalize_gradient(value.gradient, value.loss)

        # conjugate gradient (Polak-Ribiere)
        if i == 0:
            alpha = -grad
        else:
            gamma = np.sum(grad * (grad - grad_old)) / np.sum(grad_old * grad_old)
            alpha = -grad + gamma * alpha_old
        grad_old = grad
        alpha_old = alpha

        # normalise search direction
        search = alpha / np.sqrt(np.sum(alpha * alpha) * 2.0)

        # backtracking line search
        accepted = None
        t = 1.0
        for _ in range(line_search['max_steps']):
            trial = objective_function(n, d, S, mu, stats.sizes, t * search,
                                       False, backend)
            loss_new = sign * normalize_loss(trial.loss, k)

            # sufficient decrease?
            if loss_new <= loss + line_search['alpha'] * t * _inner(grad, search):
                accepted = trial
                break
            t *= line_search['beta']

        # stop if line search failed
        if accepted is None or loss_new >= loss:
            converged = True
            break

        # stop if relative decrease is below threshold
        if abs((loss - loss_new) / loss) < relative_decrease:
            converged = True
            break

        # rotated moments become the new baseline
        S = accepted.covariances
        mu = accepted.means

        # update demixing matrix
        B = accepted.rotation @ B
        i += 1

    # mixing matrix is the inverse of B
    Mix = backend.inv(B)
    Ps, Pn = B[:d, :], B[d:, :]
    Bs, Bn = Mix[:, :d], Mix[:, d:]

    if optimize_nonstationary:
        # exchange stationary <-> non-stationary
        Ps, Pn = Pn, Ps
        Bs, Bn = Bn, Bs

    return Results(Ps, Pn, Bs, Bn,
                   loss=loss,
                   converged=converged,
                   iterations=i,
                   params=params,
                   epoch_type=stats.epoch_type,
                   n_equal_epochs=stats.n_equal_epochs)
