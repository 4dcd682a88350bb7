# Kieran Owens 2025
# ssatools objective function

# Contains:
# ObjectiveValue - loss, gradient, rotation and rotated epoch moments
# objective_function - SSA loss and its gradient w.r.t. a skew-symmetric generator
# chi2_dof - degrees of freedom of the chi^2 distribution of the loss
# normalize_loss / normalize_gradient - chi^2 normalisation of loss and gradient

from collections import namedtuple

import numpy as np

from ssatools.linalg import LinearAlgebra

ObjectiveValue = namedtuple(
    'ObjectiveValue', ['loss', 'gradient', 'rotation', 'covariances', 'means'])
ObjectiveValue.__doc__ = """
Result of one evaluation of the SSA objective function.

loss: float
    Unnormalised loss at R = expm(M).

gradient: ndarray, shape (n, n) or None
    Gradient w.r.t. M, only if it was requested.

rotation: ndarray, shape (n, n)
    The rotation R = expm(M).

covariances, means: ndarray
    The epoch covariances and means rotated by R (means is None if the means
    are not used). Passing these back as the new baseline avoids rotating the
    moments again in the next iteration.
"""


def objective_function(n, d, covariances, means, sizes, M=None,
                       calc_gradient=False, backend=None):
    """
    SSA objective function (and optionally its gradient).

    For the rotation R = expm(M) the loss is the sum over epochs of

        e_i * ( -log det([R S_i R^T]_d) + ||[R mu_i]_d||^2 )

    where [.]_d denotes truncation to the first d coordinates and the mean
    term is dropped if means is None.

    Parameters
    ----------
    n: int
        Number of dimensions.

    d: int
        Number of sources whose stationarity is measured.

    covariances: ndarray, shape (n_epochs, n, n)
        Epoch covariance matrices in the current coordinates.

    means: ndarray, shape (n_epochs, n) or None
        Centred epoch means in the current coordinates, or None if the means
        are not used.

    sizes: ndarray, shape (n_epochs)
        Number of samples per epoch.

    M: ndarray, shape (n, n) or None
        Skew-symmetric generator of the rotation. None means the identity.

    calc_gradient: bool
        Whether to compute the gradient w.r.t. M.

    Returns
    -------
    value : ObjectiveValue
    """

    if backend is None:
        backend = LinearAlgebra()

    use_mean = means is not None
    R = np.eye(n) if M is None else backend.expm(M)

    loss = 0.0
    gradient = np.zeros((d, n)) if calc_gradient else None

    S_new = np.empty_like(covariances)
    mu_new = np.empty_like(means) if use_mean else None

    for i in range(len(sizes)):
        # rotate covariance matrix (R from the left is needed for the gradient)
        RS = R @ covariances[i]
        S_new[i] = RS @ R.T

        # truncate to the first d sources
        RS_d = RS[:d, :]
        RSRt_d = S_new[i][:d, :d]

        # log det via Cholesky: det = prod(diag(L))^2
        L = backend.cholesky(RSRt_d)
        add = -2.0 * np.sum(np.log(np.diag(L)))

        if use_mean:
            mu_new[i] = R @ means[i]
            Rmu_d = mu_new[i][:d]
            add += Rmu_d @ Rmu_d

        loss += sizes[i] * add

        if calc_gradient:
            gradient -= sizes[i] * backend.solve(RSRt_d, RS_d, assume_a='pos')
            if use_mean:
                gradient += sizes[i] * np.outer(Rmu_d, means[i])

    if calc_gradient:
        # pad with zeros to n x n and map to the tangent space at R
        G = np.vstack([2.0 * gradient, np.zeros((n - d, n))])
        gradient = G @ R.T - R @ G.T

    return ObjectiveValue(loss, gradient, R, S_new, mu_new)


def chi2_dof(n_epochs, d, use_mean=True, use_covariance=True):
    """Degrees of freedom k of the chi^2 distribution of the loss."""

    if use_mean and use_covariance:
        return (n_epochs * d * (d + 3)) // 2
    elif use_covariance:
        return (n_epochs * d * (d + 1)) // 2

    return n_epochs * d


def normalize_loss(loss, k):
    """sqrt(2 loss) - sqrt(2k - 1), the normal approximation of a chi^2 value."""
    return np.sqrt(2.0 * max(loss, 0.0)) - np.sqrt(2.0 * k - 1.0)


def normalize_gradient(gradient, loss):
    """Gradient of normalize_loss given the gradient of the raw loss."""
    return gradient / np.sqrt(max(2.0 * loss, np.finfo(float).tiny))
