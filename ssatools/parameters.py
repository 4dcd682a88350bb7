# Kieran Owens 2025
# ssatools parameters

# Contains:
# SSAParameters - validated, immutable parameters of one SSA run

import dataclasses
from dataclasses import dataclass

from ssatools.config import CONFIG
from ssatools.exceptions import ConfigurationError


@dataclass(frozen=True)
class SSAParameters:
    """
    Parameters of the SSA algorithm.

    Instances are validated on construction and cannot be modified; use
    ``replace`` to obtain a changed copy. An invalid change raises a
    ConfigurationError and leaves the original instance as it was.

    Parameters
    ----------
    n_stationary: int
        Number of stationary sources d to be found.

    n_restarts: int
        Number of random restarts per optimisation phase.
        Default: 5.

    use_mean: bool
        Whether changes in the epoch means are penalised.
        Default: True.

    use_covariance: bool
        Whether changes in the epoch covariance matrices are penalised.
        Default: True.

    ignore_determinacy: bool
        Downgrade the determinacy check to a logged warning.
        Default: False.

    nsa: bool
        Optimise the non-stationary sources directly in a single phase
        instead of combining a stationary and a non-stationary phase.
        Default: False.
    """

    n_stationary: int
    n_restarts: int = CONFIG['restarts']['default']
    use_mean: bool = True
    use_covariance: bool = True
    ignore_determinacy: bool = False
    nsa: bool = False

    def __post_init__(self):

        if int(self.n_stationary) != self.n_stationary or self.n_stationary < 1:
            raise ConfigurationError('Number of stationary sources must be positive')
        if int(self.n_restarts) != self.n_restarts or self.n_restarts < 1:
            raise ConfigurationError('Number of restarts must be positive')
        if not (self.use_mean or self.use_covariance):
            raise ConfigurationError(
                "At least one of the options 'use mean' or 'use covariance "
                "matrix' has to be selected.")

    def replace(self, **changes):
        """Return a validated copy with the given fields changed."""
        return dataclasses.replace(self, **changes)

    def check_dimensions(self, n_dims):
        """Raise a ConfigurationError unless d < n."""

        if self.n_stationary >= n_dims:
            raise ConfigurationError(
                f'Number of stationary sources ({self.n_stationary}) must be '
                f'smaller than the number of input dimensions ({n_dims})')

    def min_epochs(self, n_dims):
        """Smallest number of epochs guaranteeing determinacy of the solution."""

        if self.use_mean and self.use_covariance:
            return (n_dims - self.n_stationary) // 2 + 3

        return (n_dims - self.n_stationary) + 2
