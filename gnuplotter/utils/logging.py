"""Logging setup for scripts that drive gnuplot sessions."""

import logging

LOG_FORMAT = "%(levelname)-8s %(name)s: %(message)s"


def configure_logging(verbose: bool = False) -> None:
    """
    Configure root logging for a command line run.

    Library modules only create loggers (logging.getLogger(__name__)); this is
    the single place that attaches a handler. With verbose=True the session's
    DEBUG lifecycle messages (files created, render command, exit status) are
    shown.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
    )
