from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class ServerSentEvent:
    event: str
    data: str


class ServerSentEventParser:
    """Incremental text/event-stream parser.

    Lines are fed one at a time (without the trailing newline). An event is
    dispatched on the blank line that terminates it. Comment lines (starting
    with ':') and unknown fields are ignored.
    """

    def __init__(self):
        self._event: Optional[str] = None
        self._data: List[str] = []

    def feed(self, line: str) -> Optional[ServerSentEvent]:
        line = line.rstrip("\r\n")

        if not line:
            return self._dispatch()
        if line.startswith(":"):
            return None

        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]

        if field == "event":
            self._event = value
        elif field == "data":
            self._data.append(value)

        return None

    def _dispatch(self) -> Optional[ServerSentEvent]:
        if self._event is None and not self._data:
            return None

        event = ServerSentEvent(
            event=self._event or "message",
            data="\n".join(self._data),
        )
        self._event = None
        self._data = []
        return event
