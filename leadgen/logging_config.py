"""
Logging setup for the web app and the RQ worker.

LOG_LEVEL (default INFO) and LOG_FORMAT ("text" or "json") pick the level and
the formatter. Records emitted while a background job runs carry its id as
`job_id`, so worker output can be grepped per job.
"""
import json
import logging
import os
import sys
from contextlib import contextmanager
from datetime import datetime, timezone


TEXT_FORMAT = '[%(asctime)s] %(levelname)s %(name)s: %(message)s'
TEXT_DATEFMT = '%Y-%m-%d %H:%M:%S'

# LogRecord attributes that are not caller-supplied `extra` fields
_RESERVED_ATTRS = set(vars(logging.LogRecord('', 0, '', 0, '', (), None))) | {'message', 'asctime'}

# Third-party loggers that are noisy at INFO
_NOISY_LOGGERS = ('urllib3', 'openai', 'httpcore', 'httpx', 'rq.worker')


class JobContextFilter(logging.Filter):
    """Stamps `job_id` on every record while a lead job is bound."""

    def __init__(self):
        super().__init__()
        self.job_id = None

    def filter(self, record):
        if self.job_id and not hasattr(record, 'job_id'):
            record.job_id = self.job_id
        return True


_job_filter = JobContextFilter()


@contextmanager
def job_context(job_id: str):
    """
    Tag log output with `job_id` for the duration of the block.

    RQ runs one job per work-horse process, so the binding is process-wide
    and also covers records from the enrichment and search thread pools.
    """
    previous = _job_filter.job_id
    _job_filter.job_id = job_id
    try:
        yield
    finally:
        _job_filter.job_id = previous


class TextFormatter(logging.Formatter):
    def __init__(self):
        super().__init__(TEXT_FORMAT, datefmt=TEXT_DATEFMT)

    def format(self, record):
        line = super().format(record)
        job_id = getattr(record, 'job_id', None)
        return f'{line} [job={job_id}]' if job_id else line


class JSONFormatter(logging.Formatter):
    """One JSON object per line; `extra` fields land under "extra"."""

    def format(self, record):
        entry = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }
        extra = {
            k: v for k, v in vars(record).items()
            if k not in _RESERVED_ATTRS and not k.startswith('_')
        }
        if extra:
            entry['extra'] = extra
        if record.exc_info and record.exc_info[0] is not None:
            entry['exception'] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _level_from_env() -> int:
    level = logging.getLevelName(os.getenv('LOG_LEVEL', 'INFO').upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(app=None):
    """
    Install a single stderr handler on the root logger.

    Safe to call repeatedly; earlier root handlers are replaced. When a Flask
    app is given, its logger drops its own handler and propagates to root.
    """
    level = _level_from_env()
    json_output = os.getenv('LOG_FORMAT', 'text').lower() == 'json'

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter() if json_output else TextFormatter())
    handler.addFilter(_job_filter)

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)
    root.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if app is not None:
        app.logger.handlers.clear()
        app.logger.setLevel(level)
        app.logger.propagate = True
