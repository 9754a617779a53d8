"""Workspace-level pytest configuration and fixtures.

This file provides shared configuration for all tests in the repository.
"""

import logging

import pytest


@pytest.fixture(autouse=True, scope="function")
def isolate_logging_configuration():
    """Automatically preserve and restore logging state for each test.

    CLI commands call ``setup_logging()``, which applies ``dictConfig`` to the
    process-wide logging tree. Restoring handlers and levels after each test
    keeps test results independent of execution order.
    """
    root = logging.getLogger()
    saved_root = (root.level, list(root.handlers))
    saved_loggers = {
        name: (logger.level, list(logger.handlers), logger.propagate)
        for name in ("docmeta", "dmt")
        for logger in [logging.getLogger(name)]
    }

    yield

    root.setLevel(saved_root[0])
    root.handlers[:] = saved_root[1]
    for name, (level, handlers, propagate) in saved_loggers.items():
        logger = logging.getLogger(name)
        logger.setLevel(level)
        logger.handlers[:] = handlers
        logger.propagate = propagate
