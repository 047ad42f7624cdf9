"""
Logging Configuration for loudbatch

This module provides centralized logging configuration for the entire
application, ensuring consistent logging across the analysis orchestrator,
the normalization session and the CLI.
"""

import os
import sys
import logging
import logging.handlers
from pathlib import Path
from typing import Optional
from datetime import datetime


class ColoredFormatter(logging.Formatter):
    """Colored console formatter for better readability"""

    COLORS = {
        'DEBUG': '\033[36m',    # Cyan
        'INFO': '\033[32m',     # Green
        'WARNING': '\033[33m',  # Yellow
        'ERROR': '\033[31m',    # Red
        'CRITICAL': '\033[35m', # Magenta
    }
    RESET = '\033[0m'

    def format(self, record):
        # Work on a copy so file handlers never see the escape codes
        record = logging.makeLogRecord(record.__dict__)
        if record.levelname in self.COLORS:
            record.levelname = f"{self.COLORS[record.levelname]}{record.levelname}{self.RESET}"
        return super().format(record)


class LoudBatchLogger:
    """Centralized logger configuration for loudbatch"""

    def __init__(self, log_dir: Optional[str] = None, console_level: str = "INFO",
                 file_level: str = "DEBUG", enable_console: bool = True):
        """
        Initialize logging system

        Args:
            log_dir: Directory for log files (default: ~/.loudbatch/logs)
            console_level: Console logging level
            file_level: File logging level
            enable_console: Whether to enable console logging
        """
        self.log_dir = log_dir or os.path.expanduser('~/.loudbatch/logs')
        self.console_level = getattr(logging, console_level.upper())
        self.file_level = getattr(logging, file_level.upper())
        self.enable_console = enable_console

        Path(self.log_dir).mkdir(parents=True, exist_ok=True)

        self._setup_package_logger()
        self._setup_component_loggers()

    def _setup_package_logger(self):
        """Attach handlers to the package logger"""
        package_logger = logging.getLogger('loudbatch')
        package_logger.setLevel(logging.DEBUG)

        # Clear handlers from a previous setup
        for handler in list(package_logger.handlers):
            package_logger.removeHandler(handler)
            handler.close()

        if self.enable_console:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(self.console_level)
            console_handler.setFormatter(ColoredFormatter(
                '%(asctime)s [%(levelname)s] %(name)s: %(message)s',
                datefmt='%H:%M:%S'
            ))
            package_logger.addHandler(console_handler)

        file_formatter = logging.Formatter(
            '%(asctime)s [%(levelname)s] %(name)s:%(lineno)d - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        # Main log file (rotating)
        main_log_file = os.path.join(self.log_dir, 'loudbatch.log')
        file_handler = logging.handlers.RotatingFileHandler(
            main_log_file, maxBytes=10*1024*1024, backupCount=5, encoding='utf-8'
        )
        file_handler.setLevel(self.file_level)
        file_handler.setFormatter(file_formatter)
        package_logger.addHandler(file_handler)

        # Session-specific log file
        session_timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        session_log_file = os.path.join(self.log_dir, f'session_{session_timestamp}.log')
        session_handler = logging.FileHandler(session_log_file, encoding='utf-8')
        session_handler.setLevel(logging.DEBUG)
        session_handler.setFormatter(file_formatter)
        package_logger.addHandler(session_handler)

        # Performance log file (CSV-like timing lines)
        perf_log_file = os.path.join(self.log_dir, f'performance_{session_timestamp}.log')
        self.perf_handler = logging.FileHandler(perf_log_file, encoding='utf-8')
        self.perf_handler.setLevel(logging.INFO)
        self.perf_handler.setFormatter(logging.Formatter(
            '%(asctime)s,%(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        ))

    def _setup_component_loggers(self):
        """Setup loggers for specific components"""
        components = {
            'loudbatch.analysis': logging.DEBUG,
            'loudbatch.batch': logging.INFO,
            'loudbatch.normalization': logging.INFO,
            'loudbatch.diagnostics': logging.INFO,
            'loudbatch.config': logging.INFO,
            'loudbatch.cli': logging.INFO,
            'loudbatch.performance': logging.DEBUG,
        }

        for component, level in components.items():
            logging.getLogger(component).setLevel(level)

    def get_logger(self, name: str) -> logging.Logger:
        """Get a logger for a specific component"""
        return logging.getLogger(f'loudbatch.{name}')

    def get_performance_logger(self) -> logging.Logger:
        """Get performance logger for timing data"""
        perf_logger = logging.getLogger('loudbatch.performance')
        if not any(h is self.perf_handler for h in perf_logger.handlers):
            perf_logger.addHandler(self.perf_handler)
        return perf_logger

    def log_batch_start(self, file_count: int, workers: int):
        """Log start of an analysis batch"""
        logger = self.get_logger('batch')
        logger.info(f"Starting analysis batch: {file_count} files, {workers} workers")
        self.get_performance_logger().info(f"BATCH_START,{file_count},{workers}")

    def log_batch_complete(self, total_files: int, completed: int, measured: int,
                           total_time: float, stopped: bool = False):
        """Log completion of an analysis batch"""
        logger = self.get_logger('batch')
        state = "stopped" if stopped else "complete"
        logger.info(f"Analysis batch {state}: {measured}/{total_files} measured, "
                    f"{completed} finished in {total_time:.1f}s")
        self.get_performance_logger().info(
            f"BATCH_COMPLETE,{total_files},{completed},{measured},{total_time:.3f},{stopped}"
        )

    def log_file_analysis(self, filepath: str, duration: float, success: bool):
        """Log timing of one external analysis call"""
        logger = self.get_logger('analysis')
        basename = os.path.basename(filepath)
        if success:
            logger.debug(f"Analysis finished: {basename} in {duration:.2f}s")
        else:
            logger.warning(f"Analysis failed: {basename} after {duration:.2f}s")
        self.get_performance_logger().info(f"FILE,{filepath},{duration:.3f},{success}")

    def log_error(self, component: str, error: Exception, context: Optional[dict] = None):
        """Log errors with context"""
        logger = self.get_logger(component)
        logger.error(f"Error in {component}: {type(error).__name__}: {str(error)}")
        if context:
            logger.error(f"  Context: {context}")
        logger.debug("Stack trace:", exc_info=True)


# Global logger instance
_logger_instance = None


def setup_logging(log_dir: Optional[str] = None, console_level: str = "INFO",
                  file_level: str = "DEBUG", enable_console: bool = True) -> LoudBatchLogger:
    """Setup global logging configuration"""
    global _logger_instance
    _logger_instance = LoudBatchLogger(log_dir, console_level, file_level, enable_console)
    return _logger_instance


def get_logger(name: str = 'main') -> logging.Logger:
    """Get a component logger"""
    global _logger_instance
    if _logger_instance is None:
        _logger_instance = setup_logging()
    return _logger_instance.get_logger(name)


def get_app_logger() -> LoudBatchLogger:
    """Get the application logger instance"""
    global _logger_instance
    if _logger_instance is None:
        _logger_instance = setup_logging()
    return _logger_instance
