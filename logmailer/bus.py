"""SupervisorEventBus: supervisord event-listener protocol on stdin/stdout.

supervisord writes a header line followed by ``len`` characters of payload for
each event and waits for ``RESULT 2\\nOK`` before sending the next one. For
PROCESS_LOG_* events the payload is its own header line
(``processname:.. groupname:.. pid:.. channel:..``) followed by the raw
log data.
"""

import asyncio
import codecs
import logging
import os
import sys
from typing import Callable, TextIO

from supervisor import childutils

from logmailer.errors import StartupConnectivityError
from logmailer.models import ProcessEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[str, ProcessEvent], object]


def parse_event(payload: str) -> ProcessEvent:
    """Split a PROCESS_LOG_* payload into a ProcessEvent."""
    headers, data = childutils.eventdata(payload)
    pid = headers.get("pid")
    return ProcessEvent(
        process_name=headers.get("processname", ""),
        payload=data,
        group_name=headers.get("groupname", ""),
        pid=int(pid) if pid and pid.isdigit() else None,
        channel=headers.get("channel", ""),
    )


class SupervisorEventBus:
    def __init__(self, reader: asyncio.StreamReader, stdout: TextIO = sys.stdout, env=None):
        self._reader = reader
        self._stdout = stdout
        self._env = os.environ if env is None else env
        self._handlers: dict[str, list[EventHandler]] = {}
        self.events_seen = 0

    @classmethod
    async def from_stdio(cls, env=None) -> "SupervisorEventBus":
        """Attach a StreamReader to this process's stdin."""
        loop = asyncio.get_running_loop()
        reader = asyncio.StreamReader()
        await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), sys.stdin)
        return cls(reader, sys.stdout, env)

    def subscribe(self, category: str, handler: EventHandler):
        self._handlers.setdefault(category, []).append(handler)
        logger.info("[supervisor] %s streaming started", category)

    def _rpc_state(self) -> dict:
        rpc = childutils.getRPCInterface(self._env)
        return rpc.supervisor.getState()

    async def verify_connection(self):
        """Ask supervisord for its state over XML-RPC. Raises StartupConnectivityError."""
        if "SUPERVISOR_SERVER_URL" not in self._env:
            raise StartupConnectivityError(
                "SUPERVISOR_SERVER_URL is not set; run this listener under supervisord"
            )
        try:
            state = await asyncio.to_thread(self._rpc_state)
        except Exception as e:
            raise StartupConnectivityError(
                f"supervisord at {self._env['SUPERVISOR_SERVER_URL']} unreachable: {e}"
            ) from e
        logger.info("[supervisor] Connected, state=%s", state.get("statename", "UNKNOWN"))

    def _deliver(self, eventname: str, payload: str):
        handlers = self._handlers.get(eventname)
        if not handlers:
            return
        try:
            event = parse_event(payload)
        except ValueError:
            logger.warning("Malformed %s payload: %r", eventname, payload[:200])
            return
        for handler in handlers:
            try:
                handler(eventname, event)
            except Exception:
                logger.exception("Handler failed for %s event from %s", eventname, event.process_name)

    async def _read_chars(self, count: int) -> str:
        """Read exactly `count` decoded characters.

        supervisord measures `len` in characters of the text payload, not in
        encoded bytes. Every character is at least one byte, so asking for the
        number of characters still missing never reads past the payload.
        """
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        text = ""
        while len(text) < count:
            text += decoder.decode(await self._reader.readexactly(count - len(text)))
        return text

    async def run(self):
        """Process events until stdin closes. Cancel the task to stop early."""
        logger.info("[supervisor] Event listener running")
        while True:
            childutils.listener.ready(self._stdout)
            line = await self._reader.readline()
            if not line:
                logger.info("[supervisor] stdin closed, stopping listener")
                return
            headers = childutils.get_headers(line.decode("utf-8", errors="replace"))
            body = await self._read_chars(int(headers.get("len", 0)))
            self.events_seen += 1
            try:
                self._deliver(headers.get("eventname", ""), body)
            finally:
                childutils.listener.ok(self._stdout)
