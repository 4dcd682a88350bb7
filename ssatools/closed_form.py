# Kieran Owens 2025
# ssatools closed-form solution

# Contains:
# compute_H - weighted scatter matrix of the epoch means
# solve_mean_only - SSA using only the means, solved as an eigenvalue problem

import logging

import numpy as np

from ssatools.linalg import LinearAlgebra
from ssatools.objective import normalize_loss
from ssatools.results import Results

logger = logging.getLogger(__name__)


def compute_H(stats):
    """H = sum_i e_i (mu_i - muall)(mu_i - muall)^T."""

    # data dimensions
    n = stats.n_dims

    # construct matrix H
    H = np.zeros((n, n))
    for i in range(stats.n_epochs):
        mu_i = stats.means[i] - stats.mean_all
        H += np.outer(mu_i, mu_i) * stats.sizes[i]

    return H


def solve_mean_only(params, stats, backend=None, logger=logger):
    """
    Solve SSA using only the epoch means.

    The eigenvectors of H with the d smallest eigenvalues span the directions
    in which the means vary least; they form the stationary projection. The
    remaining eigenvectors form the non-stationary projection. loss_s and
    loss_n are the normalised sums of the corresponding eigenvalues.

    Parameters
    ----------
    params: SSAParameters
        The SSA parameters.

    stats: EpochStatistics
        Epoch moments of the data.

    Returns
    -------
    results : Results
    """

    if backend is None:
        backend = LinearAlgebra()

    logger.info('Only mean should be used; Solving SSA as an eigenvalue problem.')

    n = stats.n_dims
    d = params.n_stationary

    # eigendecomposition of H, ascending eigenvalues
    eigvals, eigvecs = backend.eigh(compute_H(stats))

    # eigenvectors are the projection directions
    B = eigvecs.T
    Mix = backend.inv(B)

    # normalise with the chi^2 degrees of freedom of each subspace
    loss_s = normalize_loss(np.sum(eigvals[:d]), stats.n_epochs * d)
    loss_n = normalize_loss(np.sum(eigvals[d:]), stats.n_epochs * (n - d))

    logger.info('Solved.')
    logger.info(f'Objective function value for the s-sources={loss_s}')
    logger.info(f'Objective function value for the n-sources={loss_n}')

    return Results(B[:d, :], B[d:, :], Mix[:, :d], Mix[:, d:],
                   loss=0.0,
                   converged=True,
                   iterations=1,
                   params=params.replace(n_restarts=1),
                   epoch_type=stats.epoch_type,
                   n_equal_epochs=stats.n_equal_epochs,
                   loss_s=loss_s,
                   loss_n=loss_n,
                   iterations_s=1,
                   iterations_n=1,
                   eigenvalues=eigvals)
