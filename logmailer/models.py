"""Event, fragment and log entry models for the mailer pipeline."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ProcessEvent:
    process_name: str
    payload: str
    group_name: str = ""
    pid: int | None = None
    channel: str = ""    # "stdout" or "stderr"


@dataclass(frozen=True)
class LogFragment:
    category: str
    process_name: str
    message: str


@dataclass(frozen=True)
class AggregatedLogEntry:
    label: str           # "<process_name> <category>"
    escaped_message: str


@dataclass
class RenderResult:
    output: str = ""
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors
