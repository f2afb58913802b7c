"""Slash command request handling.

Provides CommandHandler, which turns one form-encoded slash command body
into one CommandResult, independent of the transport that delivered it.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional, Union
from urllib.parse import parse_qsl
from zoneinfo import ZoneInfo

logger = logging.getLogger(__name__)

STATUS_OK = 200
STATUS_BAD_REQUEST = 400
STATUS_UNAUTHORIZED = 401

# A '%' not followed by two hex digits
_BAD_PERCENT_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")

Clock = Callable[[], datetime]


class FormDecodeError(ValueError):
    """Raised when a request body is not valid form-encoded data."""


class ResponseType(str, Enum):
    """Who sees the command response."""

    IN_CHANNEL = "in_channel"
    EPHEMERAL = "ephemeral"


@dataclass(frozen=True)
class CommandResponse:
    """Success envelope returned to the chat server."""

    response_type: ResponseType
    text: str

    def to_dict(self) -> dict[str, str]:
        return {"response_type": self.response_type.value, "text": self.text}


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one invocation: an HTTP status and a JSON payload."""

    status_code: int
    payload: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "payload", MappingProxyType(dict(self.payload)))

    @property
    def ok(self) -> bool:
        return self.status_code == STATUS_OK

    @property
    def body(self) -> str:
        return json.dumps(dict(self.payload))


def decode_form(body: Union[str, bytes]) -> dict[str, str]:
    """Decode an application/x-www-form-urlencoded body.

    Blank values are kept: ``text=`` and a bare ``text`` both decode to
    ``""``, and empty fields between separators are skipped. When a key
    repeats, the first value wins.

    Args:
        body: Raw request body. Bytes must be UTF-8.

    Returns:
        Mapping of field name to decoded value.

    Raises:
        FormDecodeError: If the body has a bad percent escape or is not UTF-8.
    """
    if isinstance(body, bytes):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError as e:
            raise FormDecodeError("body is not valid UTF-8") from e

    if not body:
        return {}

    if _BAD_PERCENT_ESCAPE.search(body):
        raise FormDecodeError("invalid percent-encoding in body")

    try:
        pairs = parse_qsl(
            body,
            keep_blank_values=True,
            encoding="utf-8",
            errors="strict",
        )
    except ValueError as e:
        raise FormDecodeError(f"malformed form body: {e}") from e

    fields: dict[str, str] = {}
    for key, value in pairs:
        fields.setdefault(key, value)
    return fields


def format_entry(text: str, now: datetime, heading: str = "Daily log", tag: str = "log") -> str:
    """Build the log entry posted back to the channel.

    The entry has a heading with a readable date, the caller's text
    unmodified, and a hashtag with the date as YYYYMMDD so entries sort and
    search by day.
    """
    readable = f"{now:%A} {now.day} {now:%B %Y}"
    return f"#### {heading} {readable}\n\n{text}\n\n#{tag}{now:%Y%m%d}"


def system_clock(timezone: str = "") -> Clock:
    """Return a clock reading wall time in the given timezone.

    An empty timezone means the host's local time.
    """
    if not timezone:
        return datetime.now
    tz = ZoneInfo(timezone)
    return lambda: datetime.now(tz)


class CommandHandler:
    """Validate a slash command request and answer with a log entry.

    Args:
        token: Shared secret the chat server sends with every request.
        clock: Zero-argument callable returning the current datetime.
        heading: Heading placed before the date.
        tag: Hashtag prefix placed before the compact date.
    """

    def __init__(
        self,
        token: str,
        clock: Optional[Clock] = None,
        heading: str = "Daily log",
        tag: str = "log",
    ) -> None:
        if not token:
            raise ValueError("command token must not be empty")
        self._token = token
        self._clock = clock or system_clock()
        self._heading = heading
        self._tag = tag

    @classmethod
    def from_config(cls, config: dict[str, Any], token: str) -> "CommandHandler":
        command = config["command"]
        return cls(
            token=token,
            clock=system_clock(command.get("timezone", "")),
            heading=command["heading"],
            tag=command["tag"],
        )

    def handle(self, body: Union[str, bytes]) -> CommandResult:
        """Process one request body.

        Returns:
            200 with the response envelope, 400 for a malformed body, or
            401 when the token does not match. Failures carry ``{}``.
        """
        try:
            fields = decode_form(body)
        except FormDecodeError as e:
            logger.warning("Rejected malformed command body: %s", e)
            return CommandResult(STATUS_BAD_REQUEST)

        # Plain equality, not constant-time
        if fields.get("token", "") != self._token:
            logger.warning(
                "Rejected command with bad token (user=%s, channel=%s)",
                fields.get("user_name", "-"),
                fields.get("channel_name", "-"),
            )
            return CommandResult(STATUS_UNAUTHORIZED)

        text = format_entry(fields.get("text", ""), self._clock(), self._heading, self._tag)
        response = CommandResponse(ResponseType.IN_CHANNEL, text)
        logger.info(
            "Accepted %s from user=%s channel=%s",
            fields.get("command", "command"),
            fields.get("user_name", "-"),
            fields.get("channel_name", "-"),
        )
        return CommandResult(STATUS_OK, response.to_dict())
