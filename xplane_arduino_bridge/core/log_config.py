#!/usr/bin/env python3

"""
Centralized logging configuration for XPlane-Arduino-Bridge.
Provides a single function to configure the logging system
consistently across the application.

Part of the XPlane-Arduino-Bridge project.
"""

import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(
        level: int = logging.INFO,
        log_to_file: bool = False,
        log_file_path: Optional[str] = None,
        max_log_files: int = 5,
        max_log_size_mb: int = 10
) -> None:
    """
    Configure the logging system for the whole application.

    Args:
        level: Logging level for console and file
        log_to_file: Whether logs are also written to a file
        log_file_path: Path of the log file (optional)
        max_log_files: Number of rotated log files to keep
        max_log_size_mb: Maximum size of a log file in MB
    """
    root_logger = logging.getLogger()

    # Replace handlers installed by earlier calls (or basicConfig)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    root_logger.setLevel(level)

    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_to_file and log_file_path:
        try:
            directory = os.path.dirname(log_file_path)
            if directory:
                os.makedirs(directory, exist_ok=True)

            file_handler = RotatingFileHandler(
                log_file_path,
                maxBytes=max_log_size_mb * 1024 * 1024,
                backupCount=max_log_files
            )
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)

            logging.info(f"Logging to file: {log_file_path}")
        except OSError as e:
            logging.error(f"Error setting up file logging: {e}")

    logging.info(f"Logging system initialized: level={logging.getLevelName(level)}")
