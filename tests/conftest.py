"""Shared pytest configuration."""

import logging

import pytest


@pytest.fixture(autouse=True)
def reset_outlay_logger():
    """Drop handlers added by the CLI so they don't outlive a test's captured stderr."""
    yield
    logger = logging.getLogger('outlay')
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
