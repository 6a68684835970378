# Ignore docstrings for this file
# pylint: disable=missing-docstring


import logging
import os

import pytest

import hyperpool.utils.logs as log_utils

# Hack to allow for vscode debugger to throw exception immediately
# instead of allowing pytest to catch the exception and report
# Based on https://stackoverflow.com/questions/62419998/how-can-i-get-pytest-to-not-catch-exceptions/62563106#62563106

# Use this in conjunction with the following launch.json configuration:
#      {
#        "name": "Debug Current Test",
#        "type": "python",
#        "request": "launch",
#        "module": "pytest",
#        "args": ["${file}", "-vs"],
#        "console": "integratedTerminal",
#        "justMyCode": true,
#        "env": {
#            "_PYTEST_RAISE": "1"
#        },
#      },
if os.getenv("_PYTEST_RAISE", "0") != "0":

    @pytest.hookimpl(tryfirst=True)
    def pytest_exception_interact(call):
        raise call.excinfo.value

    @pytest.hookimpl(tryfirst=True)
    def pytest_internalerror(excinfo):
        raise excinfo.value


@pytest.fixture(scope="session", autouse=True)
def logging_for_tests():
    """Send WARNING and above to stdout for the whole session; set HYPERPOOL_LOG_LEVEL to see more"""
    log_level = logging.getLevelName(os.getenv("HYPERPOOL_LOG_LEVEL", "WARNING"))
    log_utils.initialize_basic_logging(log_stdout=True, log_level=log_level)
    yield
    log_utils.close_logging(delete_logs=False)
