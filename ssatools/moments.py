# Kieran Owens 2025
# ssatools epoch moments

# Contains:
# EpochStatistics - per-epoch means/covariances, pooled moments and whitening
# heuristic_n_epochs - geometric-mean heuristic for the number of epochs
# equal_epochs - contiguous, equally sized epochs
# custom_epochs - epochs given by one label per sample
# epochize - compute EpochStatistics for a time series
# whitening_matrix - symmetric inverse square root of a covariance matrix

import logging
import numbers

import numpy as np

from ssatools.config import CONFIG
from ssatools.exceptions import ConfigurationError
from ssatools.linalg import LinearAlgebra

logger = logging.getLogger(__name__)

EPOCHS_EQUALLY = 'equal'
EPOCHS_EQUALLY_HEURISTIC = 'heuristic'
EPOCHS_CUSTOM = 'custom'
EPOCHS_SPECIFIED_MOMENTS = 'moments'

###############################################################################
###############################################################################
# Epoch layouts
###############################################################################
###############################################################################

def heuristic_n_epochs(n_samples, n_dims, n_stationary, use_mean=True,
                       use_covariance=True, logger=logger):
    """
    Number of equally sized epochs chosen as the geometric mean of the
    smallest number of epochs that guarantees determinacy and the largest
    number of epochs that leaves 2n samples per epoch.
    """

    if use_mean and use_covariance:
        min_epochs = (n_dims - n_stationary) / 2.0 + 3.0
    else:
        # only one moment is considered
        min_epochs = n_dims - n_stationary + 2.0

    max_epochs = n_samples / (2.0 * n_dims)

    # round half up
    n_epochs = int(np.floor(np.sqrt(min_epochs * max_epochs) + 0.5))

    logger.info(f'Setting the number of epochs to the geometric mean of '
                f'{int(min_epochs)} and {int(max_epochs)}: {n_epochs}')
    if n_epochs > 0:
        logger.info(f'Average number of samples/epoch: {n_samples / n_epochs}')

    return n_epochs


def equal_epochs(n_samples, n_epochs):
    """
    Split sample indices 0..n_samples-1 into n_epochs contiguous blocks of
    n_samples // n_epochs samples. The remainder at the end is dropped.
    """

    if not isinstance(n_epochs, numbers.Integral) or isinstance(n_epochs, bool):
        raise ConfigurationError(
            f'Number of epochs must be an integer, got {n_epochs!r}')
    if n_epochs < 1:
        raise ConfigurationError('Number of epochs must be positive')
    if n_epochs > n_samples:
        raise ConfigurationError(
            'Number of epochs must be smaller than the number of samples available')

    size = n_samples // n_epochs

    return [np.arange(i*size, (i+1)*size) for i in range(n_epochs)]


def custom_epochs(labels, n_samples=None):
    """
    Group sample indices by label. Epochs are ordered by ascending label and
    need not be contiguous or of equal size.
    """

    labels = np.asarray(labels).ravel()
    if n_samples is not None and labels.shape[0] != n_samples:
        raise ConfigurationError(
            f'Epoch definition contains {labels.shape[0]} labels for '
            f'{n_samples} samples')

    uniq, inverse = np.unique(labels, return_inverse=True)

    return [np.flatnonzero(inverse == i) for i in range(len(uniq))]


def check_epochs(epochs, n_dims, use_covariance=True):
    """Raise a ConfigurationError if the epochs cannot support estimation."""

    n_samples = sum(len(ep) for ep in epochs)
    if len(epochs) > n_samples:
        raise ConfigurationError(
            'Number of epochs must be smaller than the number of samples available')

    min_size = min(len(ep) for ep in epochs)
    if use_covariance and min_size < n_dims:
        raise ConfigurationError(
            'Number of samples per epoch must be at least the dimension of the dataset')
    if min_size < 2:
        raise ConfigurationError('Every epoch must contain at least two samples')

###############################################################################
###############################################################################
# Whitening
###############################################################################
###############################################################################

def whitening_matrix(C, backend=None):
    """
    Whitening matrix C^(-1/2) = V diag(1/sqrt(lambda)) V^T of a symmetric
    positive definite matrix C, so that W C W^T = I.
    """

    if backend is None:
        backend = LinearAlgebra()

    eigvals, eigvecs = backend.eigh(C)

    return eigvecs @ np.diag(1.0 / np.sqrt(eigvals)) @ eigvecs.T

###############################################################################
###############################################################################
# EpochStatistics
###############################################################################
###############################################################################

class EpochStatistics():
    """
    Epoch-wise moments of a multivariate time series.

    The pooled covariance is the bias-corrected average of the epoch
    covariances, Sall = sum_i S_i (e_i - 1) / (M - k), and the pooled mean is
    muall = sum_i mu_i e_i / M, where e_i is the size of epoch i, M the total
    number of samples and k the number of epochs. If any epoch covariance has
    an eigenvalue below the regularisation threshold, a multiple of the
    identity is added to every epoch covariance before pooling.

    Use ``epochize`` to compute the statistics from a time series, or
    ``from_moments`` when the epoch moments are already known.

    Attributes
    ----------
    covariances: ndarray, shape (n_epochs, n_features, n_features)
        The (possibly regularised) covariance matrix of each epoch.

    means: ndarray, shape (n_epochs, n_features)
        The mean of each epoch.

    sizes: ndarray, shape (n_epochs)
        The number of samples in each epoch.

    cov_all: ndarray, shape (n_features, n_features)
        The pooled covariance matrix.

    mean_all: ndarray, shape (n_features)
        The pooled mean.

    whitening: ndarray, shape (n_features, n_features)
        The whitening matrix of cov_all.

    regularized: bool
        Whether regularisation was applied.

    epoch_type: str
        How the epochs were defined.

    n_equal_epochs: int
        Number of equally sized epochs, or 0 for other epoch types.
    """

    def __init__(self, covariances, means, sizes, cov_all, mean_all, whitening,
                 regularized=False, epoch_type=EPOCHS_SPECIFIED_MOMENTS,
                 n_equal_epochs=0):

        self.covariances = covariances
        self.means = means
        self.sizes = sizes
        self.cov_all = cov_all
        self.mean_all = mean_all
        self.whitening = whitening
        self.regularized = regularized
        self.epoch_type = epoch_type
        self.n_equal_epochs = n_equal_epochs

    @property
    def n_epochs(self):
        return len(self.sizes)

    @property
    def n_dims(self):
        return self.covariances.shape[1]

    @property
    def n_samples(self):
        return int(np.sum(self.sizes))

    @classmethod
    def from_moments(cls, covariances, means, sizes, backend=None,
                     regularization_threshold=None, logger=logger, **kwargs):
        """
        Build epoch statistics from per-epoch covariances, means and sizes.

        Parameters
        ----------
        covariances: array-like, shape (n_epochs, n_features, n_features)
            Epoch covariance matrices.

        means: array-like, shape (n_epochs, n_features)
            Epoch means.

        sizes: array-like, shape (n_epochs)
            Number of samples per epoch.

        Returns
        -------
        stats : EpochStatistics
        """

        if backend is None:
            backend = LinearAlgebra()
        if regularization_threshold is None:
            regularization_threshold = CONFIG['moments']['regularization_threshold']

        S = np.array(covariances, dtype=float)
        mu = np.array(means, dtype=float)
        sizes = np.asarray(sizes, dtype=int)
        k, n = mu.shape

        if S.shape != (k, n, n) or sizes.shape != (k,):
            raise ConfigurationError(
                'Covariances, means and epoch sizes must describe the same epochs')
        if np.sum(sizes) <= k:
            raise ConfigurationError('Every epoch must contain at least two samples')

        # regularise if one direction has (nearly) zero variance
        smallest_eig = min(backend.eigh(S[i])[0][0] for i in range(k))
        regularized = smallest_eig < regularization_threshold
        if regularized:
            logger.info('At least one direction has nearly zero-variance. '
                        'Using regularization.')
            S += (regularization_threshold - smallest_eig) * np.eye(n)

        # pooled covariance and mean
        M = np.sum(sizes)
        cov_all = np.einsum('i,ijk->jk', sizes - 1.0, S) / (M - k)
        mean_all = (sizes @ mu) / M

        return cls(S, mu, sizes, cov_all, mean_all,
                   whitening_matrix(cov_all, backend),
                   regularized=regularized, **kwargs)


def epochize(X, n_epochs=None, labels=None, use_covariance=True, backend=None,
             logger=logger):
    """
    Compute epoch statistics of a time series.

    Parameters
    ----------
    X : ndarray, shape (n_samples, n_features)
        A multivariate time series of shape (n_samples, n_features).

    n_epochs: int
        The number of contiguous, equally sized epochs. Ignored if labels
        are given.

    labels: array-like, shape (n_samples)
        One epoch label per sample.

    use_covariance: bool
        Whether covariance matrices are needed by the caller; if so every
        epoch must contain at least n_features samples.

    Returns
    -------
    stats : EpochStatistics
    """

    X = np.asarray(X, dtype=float)
    T, D = X.shape

    if labels is not None:
        epochs = custom_epochs(labels, T)
        kwargs = dict(epoch_type=EPOCHS_CUSTOM, n_equal_epochs=0)
    elif n_epochs is not None:
        epochs = equal_epochs(T, n_epochs)
        kwargs = dict(epoch_type=EPOCHS_EQUALLY, n_equal_epochs=n_epochs)
    else:
        raise ConfigurationError('Epochs not specified')

    check_epochs(epochs, D, use_covariance)

    logger.info('Calculating covariance matrices and means...')

    means = np.zeros((len(epochs), D))
    covariances = np.zeros((len(epochs), D, D))
    for i, ep in enumerate(epochs):
        X_epoch = X[ep, :]
        means[i] = np.mean(X_epoch, axis=0)
        Xc = X_epoch - means[i]
        covariances[i] = Xc.T @ Xc / (X_epoch.shape[0] - 1)

    sizes = np.array([len(ep) for ep in epochs])

    return EpochStatistics.from_moments(covariances, means, sizes,
                                        backend=backend, logger=logger,
                                        **kwargs)
