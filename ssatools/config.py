# Kieran Owens 2025
"""
SSA Configuration
=================
Numerical thresholds and optimiser constants used by ssatools.

Usage:
    from ssatools.config import CONFIG
    beta = CONFIG['line_search']['beta']
"""

CONFIG = {

    # =================================================================
    # Moment estimation
    # =================================================================
    'moments': {
        # if an epoch covariance has an eigenvalue below this threshold,
        # a multiple of the identity is added to all epoch covariances
        'regularization_threshold': 1e-7,
    },

    # =================================================================
    # Backtracking line search (Armijo rule)
    # =================================================================
    'line_search': {
        'alpha': 0.5 * (0.01 + 0.3),
        'beta': 0.4,
        'max_steps': 10,
    },

    # =================================================================
    # Convergence of a single optimisation run
    # =================================================================
    'convergence': {
        'relative_decrease': 1e-8,
    },

    # =================================================================
    # Restarts
    # =================================================================
    'restarts': {
        'default': 5,
    },
}
