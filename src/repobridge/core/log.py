"""Logger built on logfire with composable output sinks."""

from __future__ import annotations

import contextlib
from abc import abstractmethod
from pathlib import Path
from typing import Any

from opentelemetry.proto.logs.v1 import logs_pb2
from opentelemetry.sdk.trace import ReadableSpan
from opentelemetry.sdk.trace.export import SpanExporter, SpanExportResult
from pydantic import Field, PrivateAttr, model_validator

from repobridge.core.base import BaseConfig

_current_logger: Logger | None = None


class _LoggerProxy:
    """Forwards attribute access to the configured Logger.

    Before setup_logger() runs every logging call is a no-op, so
    library code can log unconditionally.
    """

    def __getattr__(self, name):
        if _current_logger is None:
            def _noop(*args, **kwargs):  # noqa: ARG001
                return contextlib.nullcontext()
            return _noop
        return getattr(_current_logger, name)

    def __enter__(self):
        if _current_logger is None:
            return self
        return _current_logger.__enter__()

    def __exit__(self, *args):
        if _current_logger is None:
            return False
        return _current_logger.__exit__(*args)


# Imported everywhere as `from repobridge.core.log import logger`
logger = _LoggerProxy()


# Level names mapped to OpenTelemetry severity numbers
LEVELS = {
    'trace': logs_pb2.SEVERITY_NUMBER_TRACE,
    'debug': logs_pb2.SEVERITY_NUMBER_DEBUG,
    'info': logs_pb2.SEVERITY_NUMBER_INFO,
    'warn': logs_pb2.SEVERITY_NUMBER_WARN,
    'error': logs_pb2.SEVERITY_NUMBER_ERROR,
    'fatal': logs_pb2.SEVERITY_NUMBER_FATAL,
}


def level_name(level_num: int) -> str:
    """Return the most severe level name at or below level_num."""
    for name in ('fatal', 'error', 'warn', 'info', 'debug', 'trace'):
        if level_num >= LEVELS[name]:
            return name
    return 'trace'


class LevelFilteringExporter(SpanExporter):
    """Drops spans below a minimum level before forwarding them."""

    def __init__(self, exporter: SpanExporter, min_level: str | None):
        self._exporter = exporter
        self._min_severity = LEVELS.get(
            (min_level or 'info').lower(), logs_pb2.SEVERITY_NUMBER_INFO
        )

    def export(self, spans: list[ReadableSpan]) -> SpanExportResult:
        kept = [
            span for span in spans
            if (span.attributes or {}).get(
                'logfire.level_num', logs_pb2.SEVERITY_NUMBER_INFO
            ) >= self._min_severity
        ]
        if kept:
            return self._exporter.export(kept)
        return SpanExportResult.SUCCESS

    def shutdown(self) -> None:
        self._exporter.shutdown()

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        return self._exporter.force_flush(timeout_millis)


class Sink(BaseConfig):
    """One independent log destination.

    Sinks are closed through the BaseCloseable cascade when the
    owning Logger is closed.
    """

    enabled: bool = Field(default=True, description="Enable this sink")
    level: str | None = Field(
        default=None,
        description=(
            "Minimum level for this sink; inherits Logger.level when "
            "unset. Valid: trace, debug, info, warn, error, fatal"
        ),
    )
    format_template: str | None = Field(
        default="{timestamp:%Y-%m-%d %H:%M:%S} {level:<5} {message}",
        description=(
            "Line template. Fields: timestamp, level, message, "
            "location, function"
        ),
    )

    _processor: Any = PrivateAttr(default=None)

    def _format_span(self, span) -> str:
        from datetime import UTC, datetime

        attrs = span.attributes or {}
        if not self.format_template:
            return span.to_json() + '\n'

        filepath = attrs.get("code.filepath", "")
        lineno = attrs.get("code.lineno", "")
        data = {
            'timestamp': datetime.fromtimestamp(
                span.start_time / 1e9, tz=UTC
            ),
            'level': level_name(attrs.get(
                'logfire.level_num', logs_pb2.SEVERITY_NUMBER_INFO
            )),
            'message': attrs.get("logfire.msg", span.name),
            'location': f"{filepath}:{lineno}" if filepath else "",
            'function': attrs.get("code.function", ""),
        }
        try:
            line = self.format_template.format(**data)
        except KeyError as e:
            return f"ERROR: invalid template field {e}\n"

        # Keyword arguments passed to logger calls become span
        # attributes; append those that are not instrumentation data
        extra = {
            k: v for k, v in attrs.items()
            if not k.startswith(('code.', 'logfire.', 'otel.'))
        }
        if extra:
            line += " │ " + ' '.join(
                f"{k}={v!r}" for k, v in sorted(extra.items())
            )
        return line + '\n'

    @abstractmethod
    def create_processor(self, log_root: Path, run_name: str):
        """Return a span processor for this sink, or None."""

    def close(self):
        if self._processor:
            with contextlib.suppress(Exception):
                self._processor.shutdown()


class ConsoleSink(Sink):
    """Console output, rendered by logfire itself."""

    verbose: bool = Field(default=False, description="Show span details")
    colors: str = Field(
        default="auto", description="Color mode: auto, always, never"
    )

    def create_processor(self, log_root: Path, run_name: str):
        return None


class FileSink(Sink):
    """Plain-text log file."""

    enabled: bool = Field(default=False, description="Enable file logging")
    path: str = Field(
        default="{log_root}/{run_name}/repobridge.log",
        description="Log file path template",
    )

    _file: Any = PrivateAttr(default=None)

    def create_processor(self, log_root: Path, run_name: str):
        from opentelemetry.sdk.trace.export import (
            ConsoleSpanExporter,
            SimpleSpanProcessor,
        )

        log_path = Path(
            self.path.format(log_root=log_root, run_name=run_name)
        )
        log_path.parent.mkdir(parents=True, exist_ok=True)

        # Line buffered so a crash keeps everything logged so far
        self._file = open(log_path, "a", buffering=1, encoding="utf-8")  # noqa: SIM115

        exporter = ConsoleSpanExporter(
            out=self._file, formatter=self._format_span
        )
        return SimpleSpanProcessor(
            LevelFilteringExporter(exporter, self.level)
        )

    def close(self):
        # Processor first so pending spans reach the file
        super().close()
        if self._file and not self._file.closed:
            with contextlib.suppress(Exception):
                self._file.close()


class LogfireSink(Sink):
    """logfire.dev cloud export."""

    enabled: bool = Field(
        default=False, description="Send telemetry to logfire.dev"
    )
    token: str | None = Field(
        default=None,
        description="API token (or use LOGFIRE_TOKEN env var)",
    )

    def create_processor(self, log_root: Path, run_name: str):
        return None


class Logger(BaseConfig):
    """Logger with console, file and logfire sinks."""

    level: str = Field(
        default="info",
        description=(
            "Default level for every sink that does not set its own"
        ),
    )
    console: ConsoleSink = Field(default_factory=ConsoleSink)
    file: FileSink = Field(default_factory=FileSink)
    logfire: LogfireSink = Field(default_factory=LogfireSink)

    @model_validator(mode='after')
    def _cascade_level_to_sinks(self) -> Logger:
        for sink in (self.console, self.file):
            if sink.level is None:
                sink.level = self.level
        return self

    def setup(self, log_root: Path, run_name: str):
        """Create sink processors and configure logfire."""
        import logfire
        from logfire import ConsoleOptions

        sinks = (self.console, self.file, self.logfire)
        for sink in sinks:
            if sink.enabled:
                sink._processor = sink.create_processor(log_root, run_name)
        processors = [
            sink._processor for sink in sinks
            if sink.enabled and sink._processor
        ]

        console = (
            ConsoleOptions(
                min_log_level=self.console.level,
                verbose=self.console.verbose,
                colors=self.console.colors,
                include_timestamps=True,
            )
            if self.console.enabled
            else False
        )

        logfire.configure(
            service_name=f"repobridge-{run_name}",
            send_to_logfire=self.logfire.enabled,
            token=self.logfire.token if self.logfire.enabled else None,
            console=console,
            additional_span_processors=processors or None,
        )

    def trace(self, msg: str, **kwargs):
        import logfire
        logfire.trace(msg, **kwargs)

    def debug(self, msg: str, **kwargs):
        import logfire
        logfire.debug(msg, **kwargs)

    def info(self, msg: str, **kwargs):
        import logfire
        logfire.info(msg, **kwargs)

    def warn(self, msg: str, **kwargs):
        import logfire
        logfire.warn(msg, **kwargs)

    warning = warn

    def error(self, msg: str, **kwargs):
        import logfire
        logfire.error(msg, **kwargs)

    def fatal(self, msg: str, **kwargs):
        import logfire
        logfire.fatal(msg, **kwargs)

    def span(self, msg: str, **kwargs):
        """Context manager timing a block of work.

        Usage:
            with logger.span("Fetching trees", repo=repo.full_name):
                ...
        """
        import logfire
        return logfire.span(msg, **kwargs)


def setup_logger(
    log_root: Path,
    run_name: str,
    level: str = "info",
    console: ConsoleSink | None = None,
    file: FileSink | None = None,
    logfire: LogfireSink | None = None,
) -> Logger:
    """Install the global logger behind the `logger` proxy.

    Called by Config once configuration is loaded; tests call it
    directly. Any previously installed logger is closed first.

    Args:
        log_root: Root directory for log files
        run_name: Name used for the log subdirectory and service name
        level: Default level for sinks without their own level
        console: Console sink config (defaults when None)
        file: File sink config (defaults when None)
        logfire: logfire.dev sink config (defaults when None)

    Returns:
        The installed Logger
    """
    global _current_logger

    if _current_logger is not None:
        _current_logger.close()

    _current_logger = Logger(
        level=level,
        console=console or ConsoleSink(),
        file=file or FileSink(),
        logfire=logfire or LogfireSink(),
    )
    _current_logger.setup(log_root, run_name)
    return _current_logger
