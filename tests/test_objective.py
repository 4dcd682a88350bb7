"""Tests for the SSA objective function and its gradient."""
import numpy as np
import pytest


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def moments():
    """4 dimensions, 3 epochs of well-conditioned covariances and means."""
    rng = np.random.RandomState(7)
    covs = []
    for _ in range(3):
        A = rng.randn(4, 4)
        covs.append(A @ A.T / 4 + np.eye(4))
    means = rng.randn(3, 4) * 0.5
    sizes = np.array([10, 20, 30])
    return np.array(covs), means, sizes


def _skew(rng, n):
    A = rng.randn(n, n)
    return A - A.T


# ---------------------------------------------------------------------------
# Loss
# ---------------------------------------------------------------------------

class TestObjectiveFunction:

    def test_loss_at_identity(self, moments):
        from ssatools.objective import objective_function
        covs, means, sizes = moments
        d = 2
        value = objective_function(4, d, covs, means, sizes)
        expected = sum(
            sizes[i] * (-np.log(np.linalg.det(covs[i][:d, :d]))
                        + means[i][:d] @ means[i][:d])
            for i in range(3))
        assert value.loss == pytest.approx(expected, rel=1e-10)
        assert value.gradient is None
        np.testing.assert_allclose(value.rotation, np.eye(4))

    def test_loss_without_means(self, moments):
        from ssatools.objective import objective_function
        covs, _, sizes = moments
        value = objective_function(4, 1, covs, None, sizes)
        expected = sum(-sizes[i] * np.log(covs[i][0, 0]) for i in range(3))
        assert value.loss == pytest.approx(expected, rel=1e-10)
        assert value.means is None

    def test_rotated_moments_are_returned(self, moments):
        from scipy.linalg import expm
        from ssatools.objective import objective_function
        covs, means, sizes = moments
        M = 0.3 * _skew(np.random.RandomState(0), 4)
        value = objective_function(4, 2, covs, means, sizes, M)
        R = expm(M)
        np.testing.assert_allclose(value.rotation, R, atol=1e-12)
        np.testing.assert_allclose(R @ R.T, np.eye(4), atol=1e-12)
        for i in range(3):
            np.testing.assert_allclose(value.covariances[i], R @ covs[i] @ R.T,
                                       atol=1e-12)
            np.testing.assert_allclose(value.means[i], R @ means[i], atol=1e-12)

    def test_loss_at_rotation_matches_rotated_baseline(self, moments):
        from ssatools.objective import objective_function
        covs, means, sizes = moments
        M = 0.2 * _skew(np.random.RandomState(3), 4)
        rotated = objective_function(4, 2, covs, means, sizes, M)
        baseline = objective_function(4, 2, rotated.covariances, rotated.means, sizes)
        assert baseline.loss == pytest.approx(rotated.loss, rel=1e-10)


# ---------------------------------------------------------------------------
# Gradient
# ---------------------------------------------------------------------------

class TestGradient:

    def test_gradient_is_skew_symmetric(self, moments):
        from ssatools.objective import objective_function
        covs, means, sizes = moments
        value = objective_function(4, 2, covs, means, sizes, calc_gradient=True)
        assert value.gradient.shape == (4, 4)
        np.testing.assert_allclose(value.gradient, -value.gradient.T, atol=1e-12)

    @pytest.mark.parametrize('use_mean', [True, False])
    def test_gradient_matches_finite_differences(self, moments, use_mean):
        from ssatools.objective import objective_function
        covs, means, sizes = moments
        means = means if use_mean else None
        value = objective_function(4, 2, covs, means, sizes, calc_gradient=True)

        H = _skew(np.random.RandomState(11), 4)
        eps = 1e-6
        f_plus = objective_function(4, 2, covs, means, sizes, eps * H).loss
        f_minus = objective_function(4, 2, covs, means, sizes, -eps * H).loss
        numeric = (f_plus - f_minus) / (2 * eps)

        # inner product on skew-symmetric matrices is 0.5 * sum(A * B)
        analytic = 0.5 * np.sum(value.gradient * H)
        assert analytic == pytest.approx(numeric, rel=1e-5)


# ---------------------------------------------------------------------------
# Normalisation
# ---------------------------------------------------------------------------

class TestNormalisation:

    def test_chi2_dof(self):
        from ssatools.objective import chi2_dof
        assert chi2_dof(4, 2, True, True) == 4 * 2 * 5 // 2
        assert chi2_dof(4, 2, False, True) == 4 * 2 * 3 // 2
        assert chi2_dof(4, 2, True, False) == 8

    def test_normalize_loss(self):
        from ssatools.objective import normalize_loss
        assert normalize_loss(8.0, 3) == pytest.approx(4.0 - np.sqrt(5.0))

    def test_normalize_gradient(self):
        from ssatools.objective import normalize_gradient
        G = np.array([[0.0, 2.0], [-2.0, 0.0]])
        np.testing.assert_allclose(normalize_gradient(G, 8.0), G / 4.0)
