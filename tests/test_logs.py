"""Testing for logging in the hyperpool package modules"""
from __future__ import annotations

import logging
import os
import tempfile
import unittest

import hyperpool
import hyperpool.utils.logs as log_utils
from hyperpool.hyperdrive.pool_config import PoolConfig
from hyperpool.hyperdrive.pool_state import PoolState
from hyperpool.math import FixedPoint
from hyperpool.simulators import Config


class TestLogging(unittest.TestCase):
    """Run the logging tests"""

    def setUp(self):
        self.root_handlers = list(logging.getLogger().handlers)
        self.root_level = logging.getLogger().level
        self.log_dir = tempfile.TemporaryDirectory()  # pylint: disable=consider-using-with

    def tearDown(self):
        log_utils.close_logging()
        for handler in self.root_handlers:
            logging.getLogger().addHandler(handler)
        logging.getLogger().setLevel(self.root_level)
        self.log_dir.cleanup()

    def test_file_and_stdout_handlers(self):
        """Logging to a file and to stdout creates one handler each"""
        log_filename = os.path.join(self.log_dir.name, "test_logging")
        log_utils.initialize_basic_logging(log_filename, log_stdout=False)
        self.assertEqual(len(logging.getLogger().handlers), 1)
        log_utils.close_logging()
        log_utils.initialize_basic_logging(log_filename, log_stdout=True)
        self.assertEqual(len(logging.getLogger().handlers), 2)
        self.assertTrue(os.path.exists(log_filename + ".log"))

    def test_log_config_variables(self):
        """The simulation config is written to the log file"""
        log_filename = os.path.join(self.log_dir.name, "test_config.log")
        log_utils.initialize_basic_logging(log_filename, log_stdout=False, log_level=logging.INFO)
        logging.info("%s", Config(title="logged config"))
        for handler in logging.getLogger().handlers:
            handler.flush()
        with open(log_filename, "r", encoding="utf-8") as file:
            self.assertIn("logged config", file.read())

    def test_log_level(self):
        """Handlers only pass records at or above their level"""
        log_utils.initialize_basic_logging(log_stdout=True, log_level=logging.WARNING)
        self.assertEqual(logging.getLogger().level, logging.WARNING)
        with self.assertLogs(level=logging.WARNING) as logs:
            logging.warning("kept")
        self.assertEqual(len(logs.records), 1)

    def test_close_logging_deletes_files(self):
        """close_logging removes the handlers and, by default, their files"""
        log_filename = os.path.join(self.log_dir.name, "test_delete.log")
        log_utils.add_file_handler(log_filename)
        self.assertTrue(os.path.exists(log_filename))
        log_utils.close_logging()
        self.assertFalse(os.path.exists(log_filename))
        self.assertEqual(logging.getLogger().handlers, [])

    def test_crash_report(self):
        """Crash reports dump the pool state and config as JSON at CRITICAL"""
        log_filename = os.path.join(self.log_dir.name, "crash_report.log")
        log_utils.setup_crash_report_logging(log_filename=log_filename)
        pool_config = PoolConfig.from_apr(
            FixedPoint("0.05"), hyperpool.SECONDS_IN_YEAR, hyperpool.SECONDS_IN_DAY
        )
        with self.assertLogs(level=logging.CRITICAL) as logs:
            log_utils.log_crash_report(
                "open_long",
                ValueError("Message"),
                FixedPoint("1.23"),
                "bob",
                PoolState(share_reserves=FixedPoint(100)),
                pool_config,
            )
        self.assertIn("Failed to execute open_long", logs.output[0])
        self.assertIn('"share_reserves": "100.0"', logs.output[0])
