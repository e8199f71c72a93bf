"""Test log level filtering and logger cleanup."""

import tempfile
from pathlib import Path

import pytest

from repobridge.core.log import (
    LEVELS,
    ConsoleSink,
    FileSink,
    Logger,
    LogfireSink,
    level_name,
    logger as proxy,
    setup_logger,
)


@pytest.fixture
def temp_log_dir():
    """Create temporary directory for log files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture(autouse=True)
def restore_console_logger():
    """Put the session console logger back after each test."""
    yield
    setup_logger(
        log_root=Path(tempfile.gettempdir()) / "repobridge-tests",
        run_name="test",
        console=ConsoleSink(level="debug"),
    )


def file_logger(log_root, log_file, level):
    return setup_logger(
        log_root=log_root,
        run_name="test",
        console=ConsoleSink(enabled=False),
        file=FileSink(enabled=True, level=level, path=str(log_file)),
        logfire=LogfireSink(enabled=False),
    )


def emit_all(logger):
    logger.trace("TRACE message")
    logger.debug("DEBUG message")
    logger.info("INFO message")
    logger.warn("WARN message")
    logger.error("ERROR message")


@pytest.mark.parametrize("level, included", [
    ("trace", ["TRACE", "DEBUG", "INFO", "WARN", "ERROR"]),
    ("debug", ["DEBUG", "INFO", "WARN", "ERROR"]),
    ("info", ["INFO", "WARN", "ERROR"]),
    ("warn", ["WARN", "ERROR"]),
    ("error", ["ERROR"]),
])
def test_file_sink_filters_below_level(temp_log_dir, level, included):
    log_file = temp_log_dir / f"{level}.log"
    logger = file_logger(temp_log_dir, log_file, level)

    emit_all(logger)
    logger.close()

    content = log_file.read_text()
    for name in ("TRACE", "DEBUG", "INFO", "WARN", "ERROR"):
        if name in included:
            assert f"{name} message" in content
        else:
            assert f"{name} message" not in content


def test_keyword_arguments_appended(temp_log_dir):
    log_file = temp_log_dir / "attrs.log"
    logger = file_logger(temp_log_dir, log_file, "info")

    logger.info("Pushed commit", repo="octo/app", files=3)
    logger.close()

    line = log_file.read_text().strip()
    assert "Pushed commit" in line
    assert "files=3" in line
    assert "repo='octo/app'" in line


def test_logger_level_cascades_to_unset_sinks():
    logger = Logger(level="warn", file=FileSink(level="debug"))
    assert logger.console.level == "warn"
    assert logger.file.level == "debug"


def test_level_ordering():
    order = ["trace", "debug", "info", "warn", "error", "fatal"]
    numbers = [LEVELS[name] for name in order]
    assert numbers == sorted(numbers)
    assert level_name(LEVELS["info"]) == "info"
    assert level_name(LEVELS["warn"] + 1) == "warn"
    assert level_name(0) == "trace"


def test_logger_closes_file_via_context_manager(temp_log_dir):
    logger = Logger(
        console=ConsoleSink(enabled=False),
        file=FileSink(enabled=True, path=str(temp_log_dir / "ctx.log")),
        logfire={"enabled": False},
    )
    logger.setup(log_root=temp_log_dir, run_name="test")
    assert not logger.file._file.closed

    with pytest.raises(ValueError), logger:
        logger.info("before exception")
        raise ValueError("test exception")

    assert logger.file._file.closed


def test_config_close_cascades_to_file_sink(temp_log_dir):
    from repobridge.core.config import Config

    config = Config(
        log_root=temp_log_dir,
        logger=Logger(
            console=ConsoleSink(enabled=False),
            file=FileSink(enabled=True, path=str(temp_log_dir / "cascade.log")),
            logfire={"enabled": False},
        ),
    )
    config.logger.info("written before close")
    config.close()

    assert config.logger.file._file.closed
    assert "written before close" in (temp_log_dir / "cascade.log").read_text()


def test_default_file_path_uses_run_name(temp_log_dir):
    logger = setup_logger(
        log_root=temp_log_dir,
        run_name="nightly",
        console=ConsoleSink(enabled=False),
        file=FileSink(enabled=True),
    )
    logger.info("hello")
    logger.close()

    assert "hello" in (temp_log_dir / "nightly" / "repobridge.log").read_text()


def test_proxy_span_usable_as_context_manager():
    with proxy.span("work", item=1):
        proxy.debug("inside span")
