# Kieran Owens 2025
# ssatools dense linear algebra

# Contains:
# LinearAlgebra - numpy/scipy provider of the matrix primitives used by SSA
# random_rotation - random orthogonal matrix via the matrix exponential

import numpy as np
import scipy.linalg
from sklearn.utils import check_random_state

###############################################################################
###############################################################################
# LinearAlgebra - matrix primitives
###############################################################################
###############################################################################

class LinearAlgebra():
    """
    Linear algebra provider for SSA.

    Every SSA component receives an instance of this class instead of
    calling a global backend, so that runs with different providers (or
    different random generators) do not interfere with each other.

    Parameters
    ----------
    random_state: None, int or numpy.random.RandomState
        Seed or generator used for random rotations. An int makes restarts
        and thus results reproducible.
        Default: None.

    Attributes
    ----------
    random_state_: numpy.random.RandomState
        The generator shared by all random draws of this provider.
    """

    def __init__(self, random_state=None):

        self.random_state_ = check_random_state(random_state)

    def expm(self, A):
        """Matrix exponential of a square matrix."""
        return scipy.linalg.expm(A)

    def eigh(self, A):
        """Eigenvalues (ascending) and eigenvectors (columns) of a symmetric matrix."""
        return scipy.linalg.eigh(A)

    def cholesky(self, A):
        """Lower Cholesky factor of a symmetric positive definite matrix."""
        return scipy.linalg.cholesky(A, lower=True)

    def solve(self, A, B, assume_a='gen'):
        """Solve AX = B for X."""
        return scipy.linalg.solve(A, B, assume_a=assume_a)

    def inv(self, A):
        return self.solve(A, np.eye(A.shape[0]))

    def rand(self, *shape):
        """Uniform samples on [0, 1)."""
        return self.random_state_.random_sample(shape)

    def seed(self, random_state):
        """Replace the random generator."""
        self.random_state_ = check_random_state(random_state)

        return self


def random_rotation(n, backend=None):
    """
    Random n x n rotation matrix, computed as the matrix exponential of a
    random skew-symmetric matrix.
    """

    if backend is None:
        backend = LinearAlgebra()

    M = backend.rand(n, n) - 0.5
    M = M - M.T

    return backend.expm(M)
