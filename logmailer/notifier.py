"""Notifier: one aggregate -> render -> send attempt per dispatch."""

import logging
from typing import Protocol, runtime_checkable

from logmailer.aggregator import LogAggregator
from logmailer.errors import RenderError, SendError
from logmailer.models import AggregatedLogEntry, RenderResult

logger = logging.getLogger(__name__)


@runtime_checkable
class Renderer(Protocol):
    def render(self, logs: list[AggregatedLogEntry]) -> RenderResult: ...


@runtime_checkable
class MailTransport(Protocol):
    async def verify_connection(self) -> None: ...

    async def send(self, subject: str, html: str) -> dict: ...


class Notifier:
    def __init__(
        self,
        aggregator: LogAggregator,
        renderer: Renderer,
        transport: MailTransport,
        subject: str,
        default_label: str,
    ) -> None:
        self._aggregator = aggregator
        self._renderer = renderer
        self._transport = transport
        self._subject = subject
        self._default_label = default_label
        self.sent_count = 0
        self.failed_count = 0

    def subject_for(self, trigger_category: str | None) -> str:
        return f"{trigger_category or self._default_label}-{self._subject}"

    async def dispatch(self, trigger_category: str | None = None) -> bool:
        """Flush every category queue into one email.

        Render and send failures are logged and swallowed: the drained
        fragments are gone either way (at-most-once delivery). Returns True
        when the transport accepted the message.
        """
        logs = self._aggregator.aggregate()
        try:
            result = self._renderer.render(logs)
            if result.errors:
                raise RenderError(result.errors)
            info = await self._transport.send(self.subject_for(trigger_category), result.output)
        except RenderError as e:
            self.failed_count += 1
            logger.error("Template render failed, dropping %d log entries: %s", len(logs), e)
            return False
        except SendError as e:
            self.failed_count += 1
            logger.error("Error sending mail: %s", e)
            return False
        except Exception:
            self.failed_count += 1
            raise

        self.sent_count += 1
        logger.info("SendMail %s", info)
        return True
