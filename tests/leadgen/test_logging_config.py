"""Tests for structured logging configuration."""
import json
import logging
import os
from unittest.mock import patch

import pytest
from flask import Flask

from leadgen.logging_config import JSONFormatter, TextFormatter, configure_logging, job_context


@pytest.fixture(autouse=True)
def _reset_root_logger():
    """Reset root logger state after each test."""
    root = logging.getLogger()
    original_level = root.level
    original_handlers = root.handlers[:]
    yield
    root.setLevel(original_level)
    root.handlers = original_handlers


class TestConfigureLogging:
    """Tests for configure_logging()."""

    def test_default_level_is_info(self):
        with patch.dict(os.environ, {}, clear=False):
            os.environ.pop('LOG_LEVEL', None)
            configure_logging()
        assert logging.getLogger().level == logging.INFO

    def test_log_level_env_var_changes_level(self):
        with patch.dict(os.environ, {'LOG_LEVEL': 'debug'}):
            configure_logging()
        assert logging.getLogger().level == logging.DEBUG

    def test_invalid_log_level_defaults_to_info(self):
        with patch.dict(os.environ, {'LOG_LEVEL': 'NONSENSE'}):
            configure_logging()
        assert logging.getLogger().level == logging.INFO

    def test_text_format_includes_logger_name(self, capsys):
        with patch.dict(os.environ, {'LOG_FORMAT': 'text'}):
            configure_logging()
        logging.getLogger('pipeline.orchestrator').info("lead run done")
        output = capsys.readouterr().err
        assert 'pipeline.orchestrator' in output
        assert 'lead run done' in output
        assert 'INFO' in output

    def test_json_format_produces_parseable_json(self, capsys):
        with patch.dict(os.environ, {'LOG_FORMAT': 'json'}):
            configure_logging()
        logging.getLogger('services.search').warning("search failed for %s", 'pain')
        parsed = json.loads(capsys.readouterr().err.strip())
        assert parsed['level'] == 'WARNING'
        assert parsed['logger'] == 'services.search'
        assert parsed['message'] == 'search failed for pain'
        assert 'timestamp' in parsed

    def test_json_format_carries_extra_fields(self, capsys):
        with patch.dict(os.environ, {'LOG_FORMAT': 'json'}):
            configure_logging()
        logging.getLogger('test.extra').info("done", extra={'stats': {'hits': 3}})
        parsed = json.loads(capsys.readouterr().err.strip())
        assert parsed['extra'] == {'stats': {'hits': 3}}

    def test_third_party_loggers_quieted_to_warning(self):
        configure_logging()
        for name in ['urllib3', 'openai', 'httpcore', 'httpx', 'rq.worker']:
            assert logging.getLogger(name).level == logging.WARNING

    def test_no_duplicate_handlers_on_repeated_calls(self):
        configure_logging()
        configure_logging()
        assert len(logging.getLogger().handlers) == 1

    def test_flask_logger_propagates_to_root(self):
        app = Flask(__name__)
        configure_logging(app)
        assert app.logger.handlers == []
        assert app.logger.propagate is True


class TestJobContext:

    def test_text_lines_carry_job_id_inside_block(self, capsys):
        with patch.dict(os.environ, {'LOG_FORMAT': 'text'}):
            configure_logging()
        log = logging.getLogger('pipeline.enrichment')
        with job_context('job-42'):
            log.info("enriched")
        log.info("after")
        lines = capsys.readouterr().err.strip().splitlines()
        assert lines[0].endswith('enriched [job=job-42]')
        assert lines[1].endswith('after')

    def test_json_extra_carries_job_id(self, capsys):
        with patch.dict(os.environ, {'LOG_FORMAT': 'json'}):
            configure_logging()
        with job_context('job-7'):
            logging.getLogger('pipeline.orchestrator').warning("slow")
        parsed = json.loads(capsys.readouterr().err.strip())
        assert parsed['extra'] == {'job_id': 'job-7'}

    def test_records_from_worker_threads_are_tagged(self, capsys):
        import threading
        with patch.dict(os.environ, {'LOG_FORMAT': 'text'}):
            configure_logging()
        with job_context('job-9'):
            t = threading.Thread(target=lambda: logging.getLogger('services.search').info("hit"))
            t.start()
            t.join()
        assert '[job=job-9]' in capsys.readouterr().err


class TestTextFormatter:

    def test_plain_record_has_no_job_suffix(self):
        record = logging.LogRecord('x', logging.INFO, '', 0, 'hello', (), None)
        assert TextFormatter().format(record).endswith('INFO x: hello')


class TestJSONFormatter:

    def test_format_exception(self):
        formatter = JSONFormatter()
        try:
            raise ValueError("boom")
        except ValueError:
            import sys
            record = logging.LogRecord(
                name='test', level=logging.ERROR, pathname='', lineno=0,
                msg='failed', args=(), exc_info=sys.exc_info(),
            )
        parsed = json.loads(formatter.format(record))
        assert 'ValueError' in parsed['exception']
        assert 'extra' not in parsed
