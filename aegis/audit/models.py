from dataclasses import dataclass
from enum import Enum
from typing import Any


class LogModule(str, Enum):
    API = "API"
    ENGINE = "ENGINE"
    STREAM = "STREAM"
    SYSTEM = "SYSTEM"


class LogLevel(str, Enum):
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    SECURITY = "SECURITY"


@dataclass(frozen=True)
class LogEntry:
    """Single audit record. ``timestamp`` is ``YYYY-MM-DD HH:MM:SS`` so it sorts as text."""

    id: str
    timestamp: str
    module: LogModule
    level: LogLevel
    message: str

    def to_dict(self) -> dict[str, str]:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "module": self.module.value,
            "level": self.level.value,
            "message": self.message,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LogEntry":
        return cls(
            id=str(data["id"]),
            timestamp=str(data["timestamp"]),
            module=LogModule(data["module"]),
            level=LogLevel(data["level"]),
            message=str(data["message"]),
        )
