# Kieran Owens 2025
# ssatools exceptions

# Contains:
# ConfigurationError - invalid parameters or epoch layouts
# DeterminacyError - too few epochs to identify the stationary subspace


class ConfigurationError(ValueError):
    """Raised when a parameter combination or epoch layout is invalid."""


class DeterminacyError(ConfigurationError):
    """
    Raised when there are too few distinct epochs to guarantee that the
    estimated stationary subspace contains no spurious directions.

    Attributes
    ----------
    n_epochs: int
        The number of epochs that was supplied.

    min_epochs: int
        The smallest number of epochs that guarantees determinacy.
    """

    def __init__(self, n_epochs, min_epochs):

        self.n_epochs = n_epochs
        self.min_epochs = min_epochs
        super().__init__(
            f'Too few epochs specified ({n_epochs}); there may be spurious '
            f'stationary directions. You need to have at least {min_epochs} '
            f'distinct epochs to guarantee determinacy of the solution.')
