"""
Structured JSON logging for the job engine.

Each component (reconciler, submitter, pipeline, split) writes to a single
append-only JSONL file under {storage_root}/logs/, one JSON object per line:

  Required fields: timestamp, level, message, component
  Optional fields: book_id, step, job_id, job_name, page_id, status,
                   success_count, fail_count, attempt, duration_seconds, error

USAGE:
    logger = create_logger("reconciler", book_id="book-1", log_dir=root / "logs")
    logger.info("Collected results", job_name=name, success_count=8, fail_count=2)
"""

import json
import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional


CONTEXT_FIELDS = (
    'book_id',
    'component',
    'step',
    'job_id',
    'job_name',
    'page_id',
    'status',
    'success_count',
    'fail_count',
    'attempt',
    'duration_seconds',
    'error',
)


class FlushingFileHandler(logging.FileHandler):
    """FileHandler that flushes after every emit for real-time log visibility."""
    def emit(self, record):
        super().emit(record)
        self.flush()


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now().astimezone().isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
        }

        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_data[field] = value

        return json.dumps(log_data, default=str)


class PipelineLogger:
    """Logger that writes to a single append-only JSONL file per component.

    File handlers are created lazily on first log message to avoid
    creating empty log files when nothing is logged.
    """
    def __init__(
        self,
        component: str,
        book_id: Optional[str] = None,
        log_dir: Optional[Path] = None,
        console_output: bool = False,
        json_output: bool = True,
        level: str = "INFO",
        filename: str = None
    ):
        self.component = component
        self.book_id = book_id
        self.log_dir = Path(log_dir) if log_dir else None
        self.console_output = console_output
        self.json_output = json_output and self.log_dir is not None
        self.level = level
        self.filename = filename or f"{component}.jsonl"

        self._logger = None
        self._initialized = False
        self.log_file = None

    def _ensure_initialized(self):
        """Initialize logger and handlers on first use."""
        if self._initialized:
            return

        logger_name = f"scriptorium.{self.component}.{id(self)}"
        self._logger = logging.getLogger(logger_name)
        self._logger.setLevel(getattr(logging, self.level.upper()))
        self._logger.propagate = False

        if self.console_output:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setFormatter(logging.Formatter('%(levelname)s: %(message)s'))
            self._logger.addHandler(console_handler)

        if self.json_output:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            json_file = self.log_dir / self.filename
            json_handler = FlushingFileHandler(json_file, mode='a')
            json_handler.setFormatter(JSONFormatter())
            self._logger.addHandler(json_handler)
            self.log_file = json_file

        if not self._logger.handlers:
            self._logger.addHandler(logging.NullHandler())

        self._initialized = True

    @property
    def logger(self):
        """Get the underlying logger, initializing if needed."""
        self._ensure_initialized()
        return self._logger

    def _log(self, level: str, message: str, **kwargs):
        reserved_params = {}
        for param in ['exc_info', 'stack_info', 'stacklevel', 'extra']:
            if param in kwargs:
                reserved_params[param] = kwargs.pop(param)

        extra = {
            'component': self.component,
            **kwargs
        }
        if self.book_id and 'book_id' not in extra:
            extra['book_id'] = self.book_id
        if 'extra' in reserved_params:
            extra.update(reserved_params.pop('extra'))

        self.logger.log(
            getattr(logging, level.upper()),
            message,
            extra=extra,
            **reserved_params
        )

    def debug(self, message: str, **kwargs):
        self._log('DEBUG', message, **kwargs)

    def info(self, message: str, **kwargs):
        self._log('INFO', message, **kwargs)

    def warning(self, message: str, **kwargs):
        self._log('WARNING', message, **kwargs)

    def error(self, message: str, **kwargs):
        self._log('ERROR', message, **kwargs)

    def close(self):
        if self._initialized and self._logger:
            for handler in self._logger.handlers[:]:
                handler.close()
                self._logger.removeHandler(handler)
            self._initialized = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


def default_log_level() -> str:
    return "DEBUG" if os.environ.get("DEBUG", "").lower() in ("true", "1", "yes") else "INFO"


def create_logger(component: str, **kwargs) -> PipelineLogger:
    kwargs.setdefault('level', default_log_level())
    return PipelineLogger(component, **kwargs)
