"""Remote log shipping.

``LogSinkHandler`` forwards records from the ``app`` logger to an injected
``LogSink``. ``install_log_sink`` puts it behind a ``QueueHandler`` so the
HTTP post happens on the listener thread, not in the request path.
"""

import abc
import logging
import queue
import sys
from datetime import datetime, timezone
from logging.handlers import QueueHandler, QueueListener
from typing import Optional

import httpx

from app.core.config import Settings


class LogSink(abc.ABC):
    @abc.abstractmethod
    def send(self, message: str, level: str = "info") -> None:
        """Ship one log line. Must not raise."""


class HttpLogSink(LogSink):
    def __init__(
        self,
        url: str,
        token: str = "",
        *,
        timeout_seconds: float = 3.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._url = url
        self._token = token
        self._client = httpx.Client(timeout=timeout_seconds, transport=transport)

    def send(self, message: str, level: str = "info") -> None:
        headers = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        body = [
            {
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "message": message,
                "level": level,
            }
        ]
        try:
            resp = self._client.post(self._url, headers=headers, json=body)
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            # Logging from here would feed back into this sink.
            print(f"Failed to send log: {exc.__class__.__name__}", file=sys.stderr)

    def close(self) -> None:
        self._client.close()


class LogSinkHandler(logging.Handler):
    def __init__(self, sink: LogSink, level: int = logging.INFO) -> None:
        super().__init__(level)
        self.sink = sink

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = self.format(record)
            self.sink.send(message, record.levelname.lower())
        except Exception:
            self.handleError(record)


class InstalledLogSink:
    def __init__(self, logger: logging.Logger, queue_handler: QueueHandler, listener: QueueListener, sink: LogSink):
        self.logger = logger
        self.queue_handler = queue_handler
        self.listener = listener
        self.sink = sink

    def uninstall(self) -> None:
        self.logger.removeHandler(self.queue_handler)
        self.listener.stop()
        if isinstance(self.sink, HttpLogSink):
            self.sink.close()


def install_log_sink(
    sink: LogSink,
    *,
    logger_name: str = "app",
    level: int = logging.INFO,
) -> InstalledLogSink:
    records: queue.SimpleQueue = queue.SimpleQueue()
    handler = LogSinkHandler(sink, level)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    listener = QueueListener(records, handler, respect_handler_level=True)
    queue_handler = QueueHandler(records)
    queue_handler.setLevel(level)

    target = logging.getLogger(logger_name)
    target.addHandler(queue_handler)
    listener.start()
    return InstalledLogSink(target, queue_handler, listener, sink)


def log_sink_from_settings(settings: Settings) -> Optional[HttpLogSink]:
    if not settings.log_sink_url:
        return None
    return HttpLogSink(
        settings.log_sink_url,
        settings.log_sink_token,
        timeout_seconds=settings.log_sink_timeout_seconds,
    )
