"""
Logging for Praxis processes.

Every AppLogger writes to the standard logging module and to a shared
in-memory buffer. The buffer backs the /health report: entry counts per
level and source, plus the latest pipeline failures with the plan, task
or user ids they were logged with.

    log = plan_logger.bind(plan_id=plan_id)
    log.info("Generating plan")
    log.error("Plan generation failed", error_type="ProviderError")
"""

import logging
from collections import Counter, deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from threading import Lock
from typing import Any, Dict, Iterable, List


class LogLevel(str, Enum):
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


# Sources whose errors mean a job attempt failed
PIPELINE_SOURCES = ("plan_generation", "xp_recalculation", "task_regeneration")


@dataclass
class LogEntry:
    level: LogLevel
    message: str
    source: str = "system"
    metadata: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "level": self.level.value,
            "message": self.message,
            "source": self.source,
            "metadata": self.metadata,
        }


class LogBuffer:
    """
    Bounded, thread-safe buffer of recent entries.

    RQ work horses and the in-process pools log from different threads.
    Level totals count every entry ever added, not just the buffered ones.
    """

    def __init__(self, max_size: int = 1000):
        self._entries: deque = deque(maxlen=max_size)
        self._lock = Lock()
        self._totals: Counter = Counter()

    def add(self, entry: LogEntry):
        with self._lock:
            self._entries.append(entry)
            self._totals[entry.level.value] += 1

    def failures(
        self,
        sources: Iterable[str] = PIPELINE_SOURCES,
        limit: int = 10
    ) -> List[Dict[str, Any]]:
        """Latest ERROR entries from `sources`, newest first."""
        wanted = set(sources)
        with self._lock:
            matches = [
                e for e in reversed(self._entries)
                if e.level == LogLevel.ERROR and e.source in wanted
            ]
        return [e.to_dict() for e in matches[:limit]]

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            by_source = Counter(e.source for e in self._entries)
            return {
                "buffered": len(self._entries),
                "max_size": self._entries.maxlen,
                "by_source": dict(by_source),
                "totals": dict(self._totals),
            }


_log_buffer = LogBuffer()


def get_log_buffer() -> LogBuffer:
    return _log_buffer


class AppLogger:
    """
    Logs to Python logging and the shared buffer.

    Keyword arguments to each call become entry metadata; `bind` fixes
    some of them (plan_id, task_id, job_id) for the rest of a job.
    """

    def __init__(self, source: str, **context):
        self.source = source
        self.context = context
        self._logger = logging.getLogger(f"praxis.{source}")

    def bind(self, **context) -> "AppLogger":
        return AppLogger(self.source, **{**self.context, **context})

    def _log(self, level: LogLevel, message: str, metadata: Dict[str, Any]):
        metadata = {**self.context, **metadata}
        _log_buffer.add(LogEntry(level, message, self.source, metadata))

        fields = " ".join(f"{key}={value}" for key, value in metadata.items())
        self._logger.log(
            getattr(logging, level.value.upper()),
            f"{message} | {fields}" if fields else message,
        )

    def debug(self, message: str, **metadata):
        self._log(LogLevel.DEBUG, message, metadata)

    def info(self, message: str, **metadata):
        self._log(LogLevel.INFO, message, metadata)

    def warning(self, message: str, **metadata):
        self._log(LogLevel.WARNING, message, metadata)

    def error(self, message: str, **metadata):
        self._log(LogLevel.ERROR, message, metadata)


def configure_logging(level: str = "INFO"):
    """Configure root logging once per process (web, worker or scheduler)."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


plan_logger = AppLogger("plan_generation")
xp_logger = AppLogger("xp_recalculation")
regen_logger = AppLogger("task_regeneration")
job_logger = AppLogger("job_queue")
provider_logger = AppLogger("ai_provider")
api_logger = AppLogger("api")
