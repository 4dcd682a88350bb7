# Kieran Owens 2025
# ssatools based on non-stationarity

# Contains:
# check_determinacy - minimum number of epochs for an identifiable solution
# optimize - dual-phase SSA (stationary phase + non-stationary phase)
# SSA - Stationary Subspace Analysis estimator

import logging
import numbers

import numpy as np
from sklearn.exceptions import NotFittedError
from sklearn.utils.validation import check_array

from ssatools.cancel import CancellationToken
from ssatools.closed_form import solve_mean_only
from ssatools.config import CONFIG
from ssatools.exceptions import ConfigurationError, DeterminacyError
from ssatools.linalg import LinearAlgebra
from ssatools.moments import (EPOCHS_EQUALLY_HEURISTIC, epochize,
                              heuristic_n_epochs)
from ssatools.optimize import optimize_once
from ssatools.parameters import SSAParameters
from ssatools.results import Results

logger = logging.getLogger(__name__)

###############################################################################
###############################################################################
# Orchestration
###############################################################################
###############################################################################

def check_determinacy(params, n_dims, n_epochs, logger=logger):
    """
    Raise a DeterminacyError if there are too few epochs to rule out
    spurious stationary directions. With params.ignore_determinacy the
    problem is only logged as a warning.
    """

    min_epochs = params.min_epochs(n_dims)
    if n_epochs >= min_epochs:
        return

    if not params.ignore_determinacy:
        raise DeterminacyError(n_epochs, min_epochs)

    logger.warning(f'Too few epochs specified ({n_epochs}); there may be '
                   f'spurious stationary directions. At least {min_epochs} '
                   f'distinct epochs are needed to guarantee determinacy.')


def _restarts(params, stats, optimize_nonstationary, init, backend, token,
              logger):
    # best of params.n_restarts runs; the first run may start from init
    best = None
    for i in range(params.n_restarts):
        res = optimize_once(params, stats, optimize_nonstationary,
                            init if i == 0 else None, backend)
        if best is None or res.loss < best.loss:
            best = res

        if optimize_nonstationary:
            logger.info(f'Repetition {i+1}: iterations={res.iterations}, '
                        f'max. objective function value={-res.loss}')
        else:
            logger.info(f'Repetition {i+1}: iterations={res.iterations}, '
                        f'min. objective function value={res.loss}')

        if token is not None and token.cancelled:
            logger.info('Stopped.')
            return best, True

    return best, False


def run_ssa(params, stats, backend=None, token=None, logger=logger):
    """
    Run SSA on precomputed epoch statistics.

    If the covariances are used, the stationarity of the d stationary
    sources is optimised first (best of n_restarts runs), then the
    non-stationarity of the n-d non-stationary sources (best of n_restarts
    runs, the first one starting from the result of the first phase). The
    final decomposition combines Ps of the first phase with Pn of the second
    phase. With params.nsa only the second phase is run. If only the means
    are used, SSA is solved as an eigenvalue problem.

    A cancellation of token is noticed after the restart in progress; the
    best result found so far is returned.
    """

    if backend is None:
        backend = LinearAlgebra()

    params.check_dimensions(stats.n_dims)

    logger.info('Running SSA...')

    if not params.use_covariance:
        return solve_mean_only(params, stats, backend, logger)

    if params.nsa:
        logger.info('Optimizing the non-stationarity of the n-sources...')
        best_n, _ = _restarts(params, stats, True, None, backend, token, logger)
        return Results(best_n.Ps, best_n.Pn, best_n.Bs, best_n.Bn,
                       loss=best_n.loss,
                       converged=best_n.converged,
                       iterations=best_n.iterations,
                       params=params,
                       epoch_type=stats.epoch_type,
                       n_equal_epochs=stats.n_equal_epochs,
                       loss_n=-best_n.loss,
                       iterations_n=best_n.iterations)

    # optimisation of the s-sources
    logger.info('Optimizing the stationarity of the s-sources...')
    best_s, stopped = _restarts(params, stats, False, None, backend, token, logger)
    if stopped:
        return Results(best_s.Ps, best_s.Pn, best_s.Bs, best_s.Bn,
                       loss=best_s.loss,
                       converged=best_s.converged,
                       iterations=best_s.iterations,
                       params=params,
                       epoch_type=stats.epoch_type,
                       n_equal_epochs=stats.n_equal_epochs,
                       loss_s=best_s.loss,
                       iterations_s=best_s.iterations)

    # optimisation of the n-sources, seeded with the s-phase demixing matrix
    logger.info('Optimizing the non-stationarity of the n-sources...')
    init = np.vstack([best_s.Pn, best_s.Ps])
    best_n, _ = _restarts(params, stats, True, init, backend, token, logger)

    # put both optimisations together
    d = params.n_stationary
    Mix = backend.inv(np.vstack([best_s.Ps, best_n.Pn]))

    return Results(best_s.Ps, best_n.Pn, Mix[:, :d], Mix[:, d:],
                   loss=0.0,
                   converged=best_s.converged and best_n.converged,
                   iterations=0,
                   params=params,
                   epoch_type=stats.epoch_type,
                   n_equal_epochs=stats.n_equal_epochs,
                   loss_s=best_s.loss,
                   loss_n=-best_n.loss,
                   iterations_s=best_s.iterations,
                   iterations_n=best_n.iterations)


def optimize(params, X, n_epochs='auto', epoch_labels=None, backend=None,
             token=None, logger=logger):
    """
    Stationary Subspace Analysis of a time series.

    Resolves the number of epochs (heuristically if n_epochs is 'auto'),
    checks the determinacy condition, computes the epoch statistics and
    runs SSA on them.

    Parameters
    ----------
    params: SSAParameters
        The SSA parameters.

    X : ndarray, shape (n_samples, n_features)
        A multivariate time series of shape (n_samples, n_features).

    n_epochs: int or 'auto'
        Number of equally sized epochs. Ignored if epoch_labels is given.
        Default: 'auto'.

    epoch_labels: array-like, shape (n_samples) or None
        One epoch label per sample.

    Returns
    -------
    results : Results
    """

    if backend is None:
        backend = LinearAlgebra()

    X = np.asarray(X, dtype=float)
    T, D = X.shape
    params.check_dimensions(D)

    heuristic = False
    if epoch_labels is not None:
        k = len(np.unique(epoch_labels))
    elif n_epochs is None:
        raise ConfigurationError('Epochs not specified')
    elif isinstance(n_epochs, str):
        if n_epochs != 'auto':
            raise ConfigurationError(f"n_epochs must be an int or 'auto', got {n_epochs!r}")
        heuristic = True
        n_epochs = k = heuristic_n_epochs(T, D, params.n_stationary,
                                          params.use_mean, params.use_covariance,
                                          logger)
    elif not isinstance(n_epochs, numbers.Integral) or isinstance(n_epochs, bool):
        raise ConfigurationError(f"n_epochs must be an int or 'auto', got {n_epochs!r}")
    else:
        k = n_epochs

    check_determinacy(params, D, k, logger)

    stats = epochize(X, n_epochs, epoch_labels, params.use_covariance,
                     backend, logger)
    if heuristic:
        stats.epoch_type = EPOCHS_EQUALLY_HEURISTIC

    return run_ssa(params, stats, backend, token, logger)

###############################################################################
###############################################################################
# SSA - Stationary Subspace Analysis
###############################################################################
###############################################################################

class SSA():
    """
    Stationary Subspace Analysis (SSA).

    SSA is a TSDR method for decomposing a multivariate time series into
    stationary sources, whose mean and covariance are approximately constant
    across time series epochs, and non-stationary sources, whose mean and
    covariance vary.

    The steps involved in SSA are: (1) split the time series into epochs
    and compute the mean and covariance of each epoch, (2) whiten the data
    with the pooled covariance, (3) find the rotation for which the first d
    sources minimise the Gaussian KL divergence between the epoch
    distributions and their average, by conjugate gradient descent on
    rotation matrices from several random starting points, (4) likewise find
    the rotation for which the last n-d sources maximise that divergence,
    and (5) combine both into projections onto the stationary and the
    non-stationary subspace. If only the means are used, steps (3)-(5) are
    replaced by an eigendecomposition.

    Reference: von Bunau et al (2009) Finding stationary subspaces in
    multivariate time series, Physical Review Letters

    Parameters
    ----------
    n_components: int
        The number of stationary sources d.
        Default: 1.

    n_epochs: int or 'auto'
        The number of contiguous, equally sized epochs. 'auto' chooses the
        geometric mean of the minimum number of epochs needed for
        determinacy and n_samples / (2 n_features). Ignored if epoch labels
        are passed to fit.
        Default: 'auto'.

    n_restarts: int
        The number of random restarts of each optimisation phase.
        Default: 5.

    use_mean: bool
        Whether to consider changes in the mean.
        Default: True.

    use_covariance: bool
        Whether to consider changes in the covariance matrix.
        Default: True.

    ignore_determinacy: bool
        Log a warning instead of raising an error if there are too few epochs.
        Default: False.

    nsa: bool
        Optimise only the non-stationary sources (single phase).
        Default: False.

    random_state: None, int or numpy.random.RandomState
        The random seed used for the initial rotations.
        Default: None.

    backend: LinearAlgebra or None
        Linear algebra provider. A new one is created for each fit if None.
        Default: None.

    logger: logging.Logger or None
        Receives progress messages. Default: the module logger.

    Attributes
    ----------
    results_: Results
        Projections, bases, losses and convergence of the fit.

    linear_transform_: ndarray, shape (n_features, n_components)
        The linear transformation that yields the stationary sources when
        applied to the input time series X.

    eigvals_: ndarray, shape (n_features) or None
        The eigenvalues of the mean-only eigenvalue problem, or None if the
        last fit used the covariance matrices.
    """

    def __init__(self, n_components=1, n_epochs='auto',
                 n_restarts=CONFIG['restarts']['default'], use_mean=True,
                 use_covariance=True, ignore_determinacy=False, nsa=False,
                 random_state=None, backend=None, logger=None):

        self.n_components = n_components
        self.n_epochs = n_epochs
        self.n_restarts = n_restarts
        self.use_mean = use_mean
        self.use_covariance = use_covariance
        self.ignore_determinacy = ignore_determinacy
        self.nsa = nsa
        self.random_state = random_state
        self.backend = backend
        self.logger = logger
        self._token = CancellationToken()

    def parameters(self):
        """Validated SSAParameters built from the estimator settings."""
        return SSAParameters(n_stationary=self.n_components,
                             n_restarts=self.n_restarts,
                             use_mean=self.use_mean,
                             use_covariance=self.use_covariance,
                             ignore_determinacy=self.ignore_determinacy,
                             nsa=self.nsa)

    def stop(self):
        """
        Request cancellation of a running fit. The restart in progress is
        completed and the best result so far is kept.
        """
        self._token.cancel()

    def fit(self, X, y=None, epoch_labels=None):
        """Fit the model to X

        Parameters
        ----------
        X : ndarray, shape (n_samples, n_features)
            A multivariate time series of shape (n_samples, n_features).

        y : None
            Ignored. Used to comply with the scikit-learn API.

        epoch_labels : array-like, shape (n_samples) or None
            One epoch label per sample. Epochs are ordered by label.

        Returns
        -------
        self : object
            Returns self.
        """

        X = check_array(X)
        log = self.logger if self.logger is not None else logger

        # validate parameters before anything else
        params = self.parameters()

        if self.backend is None:
            backend = LinearAlgebra(self.random_state)
        else:
            backend = self.backend
            if self.random_state is not None:
                backend.seed(self.random_state)

        self._token.reset()
        self.results_ = optimize(params, X, self.n_epochs, epoch_labels,
                                 backend, self._token, log)

        self.linear_transform_ = self.results_.Ps.T
        self.eigvals_ = self.results_.eigenvalues

        return self

    def transform(self, X):
        """Apply dimension reduction to X.

        Parameters
        ----------
        X : ndarray, shape (n_samples, n_features)
            A multivariate time series of shape (n_samples, n_features).

        Returns
        -------
        X_new: ndarray, shape (n_samples, n_components)
            The stationary sources of X.
        """

        if not hasattr(self, 'linear_transform_'):
            raise NotFittedError(
                f'This {type(self).__name__} instance is not fitted yet. Call '
                f"'fit' before using this estimator.")

        return check_array(X) @ self.linear_transform_

    def fit_transform(self, X, y=None, epoch_labels=None):
        """Fit the model to X and apply dimension reduction to X.

        Parameters
        ----------
        X : ndarray, shape (n_samples, n_features)
            A multivariate time series of shape (n_samples, n_features).

        y : None
            Ignored. Used to comply with the scikit-learn API.

        epoch_labels : array-like, shape (n_samples) or None
            One epoch label per sample.

        Returns
        -------
        X_new: ndarray, shape (n_samples, n_components)
            The stationary sources of X.
        """

        self.fit(X, epoch_labels=epoch_labels)

        return self.transform(X)
