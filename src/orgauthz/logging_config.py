import logging
import sys

from opentelemetry import trace

from orgauthz import config


class TraceIdFilter(logging.Filter):
    """Logging filter that stamps each record with the active OpenTelemetry
    trace and span ids as `trace_id` / `span_id`.

    Outside of a span both fields are `-`.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        ctx = trace.get_current_span().get_span_context()
        if ctx is not None and ctx.is_valid:
            record.trace_id = format(ctx.trace_id, "032x")
            record.span_id = format(ctx.span_id, "016x")
        else:
            record.trace_id = "-"
            record.span_id = "-"
        return True


class SafeFormatter(logging.Formatter):
    """Formatter that tolerates records which never passed through TraceIdFilter."""

    def format(self, record):
        if not hasattr(record, "trace_id"):
            record.trace_id = "-"
        if not hasattr(record, "span_id"):
            record.span_id = "-"
        return super().format(record)


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s [trace=%(trace_id)s span=%(span_id)s] - %(message)s"


def configure_logging(level: str | None = None) -> None:
    """
    Configure application-wide logging.

    Replaces any handlers on the root logger with a single stdout handler
    whose records carry trace/span ids.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(SafeFormatter(LOG_FORMAT))
    handler.addFilter(TraceIdFilter())

    root_logger = logging.getLogger()
    root_logger.setLevel(level or config.LOG_LEVEL)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    # Noise reduction
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
