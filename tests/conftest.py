import logging

import pytest


@pytest.fixture(autouse=True)
def _reset_dnsfleet_logger():
    # CLI tests install handlers bound to CliRunner streams that close afterwards
    yield
    logger = logging.getLogger("dnsfleet")
    for h in list(logger.handlers):
        h.close()
        logger.removeHandler(h)
    logger.propagate = True
