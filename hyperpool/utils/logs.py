"""Utility functions for logging."""
from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import TYPE_CHECKING

import hyperpool
import hyperpool.utils.outputs as output_utils

if TYPE_CHECKING:
    from hyperpool.hyperdrive.pool_config import PoolConfig
    from hyperpool.hyperdrive.pool_state import PoolState

CRASH_REPORT_FILENAME = "hyperpool_crash_report.log"


def initialize_basic_logging(
    log_filename: str | None = None,
    max_bytes: int | None = None,
    log_level: int | None = None,
    delete_previous_logs: bool = False,
    log_stdout: bool = True,
    log_format_string: str | None = None,
    keep_previous_handlers: bool = False,
) -> None:
    r"""Set up basic logging with default settings, customized by inputs.

    This function should only be run once, as it implements the default settings.
    To customize logging behavior, only add_stdout_handler or add_file_handler should be run.

    Arguments
    ---------
    log_filename : str, optional
        Path and name of the log file.
        If no directory is given, the file is written to a `.logging` folder beside the package.
    max_bytes : int, optional
        Maximum size of the log file in bytes. Defaults to hyperpool.DEFAULT_LOG_MAXBYTES.
    log_level : int, optional
        Log level to track. Defaults to hyperpool.DEFAULT_LOG_LEVEL.
    delete_previous_logs : bool, optional
        Whether to delete previous log file if it exists. Defaults to False.
    log_stdout : bool, optional
        Whether to log to standard output. Defaults to True.
    log_format_string : str, optional
        Log format string. Defaults to hyperpool.DEFAULT_LOG_FORMATTER.
    keep_previous_handlers : bool, optional
        Whether to keep previous handlers. Defaults to False.
    """
    # pylint: disable=too-many-arguments
    if not keep_previous_handlers:
        _remove_handlers(get_root_logger())
    if log_stdout is True:
        add_stdout_handler(log_format_string=log_format_string, log_level=log_level)
    if log_filename is not None:
        add_file_handler(
            log_filename=log_filename,
            delete_previous_logs=delete_previous_logs,
            log_format_string=log_format_string,
            max_bytes=max_bytes,
            log_level=log_level,
        )
    # The root logger captures statements for its handlers, so it needs their lowest level
    if get_root_logger().handlers:
        get_root_logger().setLevel(min(handler.level for handler in get_root_logger().handlers))
    else:
        get_root_logger().setLevel(_create_log_level(log_level))


def close_logging(delete_logs: bool = True) -> None:
    r"""Close logging and remove handlers for the test."""
    logging.shutdown()
    root_logger = get_root_logger()
    for handler in list(root_logger.handlers):
        if delete_logs and isinstance(handler, logging.FileHandler):
            handler_file_name = getattr(handler, "baseFilename", None)
            handler.close()
            if handler_file_name is not None and os.path.exists(handler_file_name):
                os.remove(handler_file_name)
        handler.close()
        root_logger.removeHandler(handler)


def _prepare_log_path(log_filename: str) -> tuple[str, str]:
    """Prepare log file path and name."""
    log_dir, log_name = os.path.split(log_filename)
    if not log_name.endswith(".log"):
        log_name += ".log"
    if log_dir == "":
        base_folder = os.path.dirname(os.path.dirname(os.path.abspath(hyperpool.__file__)))
        log_dir = os.path.join(base_folder, ".logging")
    if not os.path.exists(log_dir):
        os.makedirs(log_dir)
    return log_dir, log_name


def _create_formatter(log_format_string: str | None = None) -> logging.Formatter:
    """Create Formatter object from a log format string, applying default settings if log_format_string is None."""
    if log_format_string is None:
        return logging.Formatter(hyperpool.DEFAULT_LOG_FORMATTER, hyperpool.DEFAULT_LOG_DATETIME)
    return logging.Formatter(log_format_string, hyperpool.DEFAULT_LOG_DATETIME)


def _create_log_level(log_level: int | None) -> int:
    """Create log level, applying default settings if log_level is None."""
    if log_level is None:
        log_level = hyperpool.DEFAULT_LOG_LEVEL
    return log_level


def get_root_logger(root_logger: logging.Logger | None = None) -> logging.Logger:
    """Retrieve the root logger, or pass through the given logger."""
    if root_logger is None:
        root_logger = logging.getLogger()
    return root_logger


def add_stdout_handler(
    logger: logging.Logger | None = None,
    log_format_string: str | None = None,
    log_level: int | None = logging.INFO,
    keep_previous_handlers: bool = True,
) -> None:
    """Add a stdout handler to the root logger."""
    logger = get_root_logger(logger)
    if not keep_previous_handlers:
        _remove_handlers(logger)
    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setLevel(_create_log_level(log_level))
    stream_handler.setFormatter(_create_formatter(log_format_string))
    logger.addHandler(stream_handler)


def add_file_handler(
    log_filename: str,
    logger: logging.Logger | None = None,
    delete_previous_logs: bool = False,
    log_format_string: str | None = None,
    log_level: int | None = logging.INFO,
    max_bytes: int | None = None,
    keep_previous_handlers: bool = True,
) -> None:
    """Add a rotating file handler to the root logger."""
    # pylint: disable=too-many-arguments
    logger = get_root_logger(logger)
    if not keep_previous_handlers:
        _remove_handlers(logger)
    if max_bytes is None:
        max_bytes = hyperpool.DEFAULT_LOG_MAXBYTES
    log_dir, log_name = _prepare_log_path(log_filename)
    if delete_previous_logs and os.path.exists(os.path.join(log_dir, log_name)):
        os.remove(os.path.join(log_dir, log_name))
    handler = RotatingFileHandler(os.path.join(log_dir, log_name), mode="w", maxBytes=max_bytes)
    handler.setFormatter(_create_formatter(log_format_string))
    handler.setLevel(_create_log_level(log_level))
    logger.addHandler(handler)


def _remove_handlers(logger: logging.Logger) -> None:
    while logger.handlers:
        logger.removeHandler(logger.handlers[-1])


def setup_crash_report_logging(log_filename: str = CRASH_REPORT_FILENAME, log_format_string: str | None = None) -> None:
    """Create a new logging file handler with CRITICAL log level for pool crash reporting."""
    add_file_handler(
        log_filename=log_filename,
        log_format_string=log_format_string,
        delete_previous_logs=False,
        log_level=logging.CRITICAL,
    )


def log_crash_report(
    operation: str,
    error: Exception,
    amount: object,
    trader: str,
    pool_state: PoolState,
    pool_config: PoolConfig,
) -> None:
    # pylint: disable=too-many-arguments
    """Log a crash report for a failed pool operation.

    Arguments
    ---------
    operation : str
        The name of the operation being executed.
    error : Exception
        The error that occurred.
    amount : object
        The amount passed to the operation.
    trader : str
        The trader executing the operation.
    pool_state : PoolState
        The pool state before the operation.
    pool_config : PoolConfig
        The configuration of the pool.
    """
    logging.critical(
        "Failed to execute %s: %r\n Amount: %s\n Trader: %s\n PoolState: %s\n PoolConfig: %s\n",
        operation,
        error,
        amount,
        trader,
        output_utils.to_json(pool_state, indent=4),
        output_utils.to_json(pool_config, indent=4),
    )
