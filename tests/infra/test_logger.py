"""
Tests for infra/logger.py

Key behaviors to verify:
1. Lazy initialization - no files created until first log
2. Single append-only file per component
3. JSON formatting with context fields
4. Close doesn't create files if nothing was logged
"""

import json

from infra.logger import PipelineLogger, create_logger


def read_lines(path):
    return [json.loads(line) for line in path.read_text().splitlines() if line.strip()]


class TestPipelineLoggerLazyInit:
    """Test that logger initializes lazily."""

    def test_no_file_created_on_init(self, tmp_path):
        """Logger should not create any files on instantiation."""
        log_dir = tmp_path / "logs"

        logger = PipelineLogger("reconciler", log_dir=log_dir)

        assert not log_dir.exists(), "Log directory should not be created on init"
        assert logger.log_file is None

    def test_file_created_on_first_log(self, tmp_path):
        """File should be created when first message is logged."""
        log_dir = tmp_path / "logs"

        logger = PipelineLogger("reconciler", log_dir=log_dir)
        logger.info("First message")

        assert logger.log_file == log_dir / "reconciler.jsonl"
        assert logger.log_file.exists()
        logger.close()

    def test_close_without_logging_creates_nothing(self, tmp_path):
        """Closing an unused logger should not create files."""
        log_dir = tmp_path / "logs"

        PipelineLogger("reconciler", log_dir=log_dir).close()

        assert not log_dir.exists(), "Close should not create directories"

    def test_no_log_dir_means_no_files(self, tmp_path):
        """Without a log_dir the logger is silent and writes nothing."""
        logger = PipelineLogger("web")
        logger.info("nowhere")
        assert logger.log_file is None


class TestPipelineLoggerJsonl:
    """Test JSONL content and append-only behavior."""

    def test_required_fields(self, tmp_path):
        logger = PipelineLogger("submitter", log_dir=tmp_path)
        logger.info("Submitted 10 pages")
        logger.close()

        entry = read_lines(tmp_path / "submitter.jsonl")[0]
        assert entry['level'] == 'INFO'
        assert entry['message'] == 'Submitted 10 pages'
        assert entry['component'] == 'submitter'
        assert 'timestamp' in entry

    def test_context_fields(self, tmp_path):
        """Keyword arguments become top-level fields; None values are dropped."""
        logger = PipelineLogger("reconciler", book_id="book-1", log_dir=tmp_path)
        logger.warning("Page failed", job_name="batches/1", page_id="book-1-p0003", error="empty", step=None)
        logger.close()

        entry = read_lines(tmp_path / "reconciler.jsonl")[0]
        assert entry['level'] == 'WARNING'
        assert entry['book_id'] == 'book-1'
        assert entry['job_name'] == 'batches/1'
        assert entry['page_id'] == 'book-1-p0003'
        assert entry['error'] == 'empty'
        assert 'step' not in entry

    def test_appends_across_instances(self, tmp_path):
        """A second logger for the same component appends to the same file."""
        for message in ("one", "two"):
            logger = PipelineLogger("sync", log_dir=tmp_path)
            logger.info(message)
            logger.close()

        messages = [e['message'] for e in read_lines(tmp_path / "sync.jsonl")]
        assert messages == ["one", "two"]

    def test_level_filters_debug(self, tmp_path):
        logger = PipelineLogger("gemini", log_dir=tmp_path, level="INFO")
        logger.debug("hidden")
        logger.error("shown")
        logger.close()

        assert [e['message'] for e in read_lines(tmp_path / "gemini.jsonl")] == ["shown"]

    def test_context_manager_closes(self, tmp_path):
        with create_logger("pipeline", log_dir=tmp_path) as logger:
            logger.info("inside")
        assert logger._initialized is False


class TestCreateLogger:

    def test_debug_env_sets_level(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DEBUG", "true")
        assert create_logger("pipeline", log_dir=tmp_path).level == "DEBUG"

    def test_default_level(self, tmp_path, monkeypatch):
        monkeypatch.delenv("DEBUG", raising=False)
        assert create_logger("pipeline", log_dir=tmp_path).level == "INFO"
