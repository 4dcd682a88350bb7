"""Tests for SSA parameters, cancellation and logging helpers."""
import dataclasses
import logging

import pytest


# ---------------------------------------------------------------------------
# SSAParameters
# ---------------------------------------------------------------------------

class TestSSAParameters:

    def test_defaults(self):
        from ssatools.config import CONFIG
        from ssatools.parameters import SSAParameters
        params = SSAParameters(n_stationary=2)
        assert params.n_restarts == CONFIG['restarts']['default']
        assert params.use_mean and params.use_covariance
        assert not params.ignore_determinacy
        assert not params.nsa

    @pytest.mark.parametrize('kwargs', [
        dict(n_stationary=0),
        dict(n_stationary=-1),
        dict(n_stationary=1.5),
        dict(n_stationary=1, n_restarts=0),
        dict(n_stationary=1, use_mean=False, use_covariance=False),
    ])
    def test_invalid(self, kwargs):
        from ssatools.exceptions import ConfigurationError
        from ssatools.parameters import SSAParameters
        with pytest.raises(ConfigurationError):
            SSAParameters(**kwargs)

    def test_configuration_error_is_value_error(self):
        from ssatools.parameters import SSAParameters
        with pytest.raises(ValueError):
            SSAParameters(n_stationary=0)

    def test_frozen(self):
        from ssatools.parameters import SSAParameters
        params = SSAParameters(n_stationary=2)
        with pytest.raises(dataclasses.FrozenInstanceError):
            params.n_stationary = 3

    def test_replace(self):
        from ssatools.parameters import SSAParameters
        params = SSAParameters(n_stationary=2)
        changed = params.replace(n_restarts=9, use_mean=False)
        assert changed.n_restarts == 9
        assert not changed.use_mean
        assert params.n_restarts != 9
        assert params.use_mean

    def test_invalid_replace_keeps_original(self):
        from ssatools.exceptions import ConfigurationError
        from ssatools.parameters import SSAParameters
        params = SSAParameters(n_stationary=2, use_mean=False)
        with pytest.raises(ConfigurationError):
            params.replace(use_covariance=False)
        assert params.use_covariance

    def test_check_dimensions(self):
        from ssatools.exceptions import ConfigurationError
        from ssatools.parameters import SSAParameters
        params = SSAParameters(n_stationary=3)
        params.check_dimensions(4)
        with pytest.raises(ConfigurationError):
            params.check_dimensions(3)

    @pytest.mark.parametrize('use_mean,use_covariance,expected', [
        (True, True, 5),
        (False, True, 6),
        (True, False, 6),
    ])
    def test_min_epochs(self, use_mean, use_covariance, expected):
        from ssatools.parameters import SSAParameters
        params = SSAParameters(n_stationary=2, use_mean=use_mean,
                               use_covariance=use_covariance)
        assert params.min_epochs(6) == expected

    def test_estimator_parameters(self):
        from ssatools.nonstationarity import SSA
        params = SSA(n_components=3, n_restarts=2, nsa=True).parameters()
        assert params.n_stationary == 3
        assert params.n_restarts == 2
        assert params.nsa


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class TestDeterminacyError:

    def test_message_and_attributes(self):
        from ssatools.exceptions import ConfigurationError, DeterminacyError
        err = DeterminacyError(3, 5)
        assert isinstance(err, ConfigurationError)
        assert err.n_epochs == 3
        assert err.min_epochs == 5
        assert 'at least 5' in str(err)


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------

class TestCancellationToken:

    def test_cancel_and_reset(self):
        from ssatools.cancel import CancellationToken
        token = CancellationToken()
        assert not token.cancelled
        token.cancel()
        assert token.cancelled
        token.reset()
        assert not token.cancelled

    def test_cancel_from_another_thread(self):
        import threading
        from ssatools.cancel import CancellationToken
        token = CancellationToken()
        worker = threading.Thread(target=token.cancel)
        worker.start()
        worker.join()
        assert token.cancelled


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

class TestConsoleLogger:

    def test_prints_bare_lines(self, capsys):
        from ssatools.log import console_logger
        log = console_logger('tests.ssatools.console')
        log.info('Running SSA...')
        assert capsys.readouterr().out == 'Running SSA...\n'

    def test_handler_added_once(self):
        from ssatools.log import console_logger
        log = console_logger('tests.ssatools.once')
        console_logger('tests.ssatools.once', level=logging.DEBUG)
        assert len(log.handlers) == 1
        assert log.level == logging.DEBUG
