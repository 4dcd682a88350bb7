# Kieran Owens 2025
# ssatools cooperative cancellation

# Contains:
# CancellationToken - stop flag polled between restarts

import threading


class CancellationToken():
    """
    Stop flag shared between an SSA run and the code controlling it.

    The flag is only polled between restarts, so a restart that is already
    running always finishes before the cancellation takes effect.
    """

    def __init__(self):

        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    def reset(self):
        self._event.clear()

    @property
    def cancelled(self):
        return self._event.is_set()
