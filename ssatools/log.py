# Kieran Owens 2025
# ssatools logging helpers

# Contains:
# console_logger - logger printing bare progress lines to stdout

import logging
import sys


def console_logger(name='ssatools', level=logging.INFO):
    """
    Logger that writes bare progress lines to stdout, e.g. to pass as the
    logger of an SSA estimator.
    """

    log = logging.getLogger(name)
    log.setLevel(level)
    if not any(getattr(h, '_ssatools_console', False) for h in log.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter('%(message)s'))
        handler._ssatools_console = True
        log.addHandler(handler)

    return log
