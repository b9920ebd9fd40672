import logging

import pytest


@pytest.fixture(autouse=True)
def reset_package_logger():
    package_logger = logging.getLogger("osmo_transfer")
    yield
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
    package_logger.propagate = True
    package_logger.setLevel(logging.NOTSET)
