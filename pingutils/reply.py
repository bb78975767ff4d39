"""Status reply model and the decoder for the status response document.

References: https://wiki.vg/Server_List_Ping
"""
import base64
import binascii
import codecs
import json
from dataclasses import dataclass, field
from typing import Optional, Tuple

from . import config
from .errors import DecodeError, ValidationError
from .text import Text


@dataclass(frozen=True)
class PingOptions:
    """What to ping and how.

    ``timeout`` is the connect timeout in milliseconds, 0 waits forever.
    ``charset`` is used to decode the status document.
    """

    hostname: str = None
    port: int = config.DEFAULT_PORT
    timeout: int = config.DEFAULT_TIMEOUT
    charset: str = config.DEFAULT_CHARSET

    def validate(self):
        """Raises ValidationError if the options cannot be used to connect"""
        if self.hostname is None:
            raise ValidationError("Hostname cannot be null.")
        if not isinstance(self.hostname, str) or not self.hostname:
            raise ValidationError("Hostname cannot be empty.")
        try:
            self.hostname.encode("idna")
        except UnicodeError as err:
            raise ValidationError(f"Hostname {self.hostname!r} is not a valid host name.") from err
        if self.port is None:
            raise ValidationError("Port cannot be null.")
        if isinstance(self.port, bool) or not isinstance(self.port, int):
            raise ValidationError(f"Port must be an integer, got {self.port!r}.")
        if not 0 <= self.port <= 65535:
            raise ValidationError(f"Port {self.port} is out of range.")
        if (
            self.timeout is None
            or isinstance(self.timeout, bool)
            or not isinstance(self.timeout, (int, float))
            or self.timeout < 0
        ):
            raise ValidationError(f"Timeout must be >= 0, got {self.timeout!r}.")
        try:
            codecs.lookup(self.charset)
        except (LookupError, TypeError) as err:
            raise ValidationError(f"Unknown charset {self.charset!r}.") from err

    @property
    def address(self) -> Tuple[str, int]:
        return self.hostname, self.port

    @property
    def timeout_seconds(self) -> Optional[float]:
        return self.timeout / 1000 if self.timeout else None


@dataclass(frozen=True)
class Version:
    name: str = None
    """Version name (ex: 13w41a)"""
    protocol: int = 0


@dataclass(frozen=True)
class Player:
    name: str = None
    id: str = None
    """Opaque identifier, usually but not always a UUID"""


@dataclass(frozen=True)
class Players:
    max: int = 0
    online: int = 0
    sample: Tuple[Player, ...] = ()
    """Some of the players online, if the server shares any"""


@dataclass(frozen=True)
class PingReply:
    description: str = None
    """The MOTD"""
    players: Players = field(default_factory=Players)
    version: Version = field(default_factory=Version)
    favicon: str = None
    """Base64 encoded favicon image as a data uri"""
    latency: float = None
    """Ping round trip in milliseconds, only set on replies from a live ping"""

    @property
    def stripped_description(self) -> Optional[str]:
        """The description without formatting codes"""
        if self.description is None:
            return None
        return Text.c_filter(self.description)

    def favicon_bytes(self) -> Optional[bytes]:
        """Returns the decoded favicon image, None if there is none

        Raises:
            DecodeError: the favicon is not valid base64
        """
        if not self.favicon:
            return None

        data = self.favicon.split(",", 1)[1] if "," in self.favicon else self.favicon
        try:
            return base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError) as err:
            raise DecodeError("Favicon is not valid base64") from err


def _int(value, name: str) -> int:
    if value is None:
        return 0
    if isinstance(value, bool):
        raise DecodeError(f"Field {name!r} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as err:
        raise DecodeError(f"Field {name!r} must be an integer, got {value!r}") from err


def _str(value, name: str) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        raise DecodeError(f"Field {name!r} must be text, got {type(value).__name__}")
    return str(value)


def _object(value, name: str) -> dict:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise DecodeError(f"Field {name!r} must be an object, got {type(value).__name__}")
    return value


def decode(payload: str, text: Text = None) -> PingReply:
    """Maps a status response document onto a PingReply.

    Unknown fields are ignored and missing fields keep their defaults.

    Args:
        payload (str): The JSON document sent by the server
        text (Text, optional): Used to flatten chat component descriptions

    Returns:
        PingReply: The decoded reply

    Raises:
        DecodeError: the document is not JSON or does not fit the reply shape
    """
    try:
        data = json.loads(payload)
    except (json.JSONDecodeError, TypeError) as err:
        raise DecodeError(f"Status response is not valid JSON: {err}") from err

    data = _object(data, "status")
    text = text if text is not None else Text()

    players = _object(data.get("players"), "players")
    sample = players.get("sample") or []
    if not isinstance(sample, list):
        raise DecodeError(f"Field 'players.sample' must be a list, got {type(sample).__name__}")

    version = _object(data.get("version"), "version")

    return PingReply(
        description=text.motd_parse(data.get("description")),
        players=Players(
            max=_int(players.get("max"), "players.max"),
            online=_int(players.get("online"), "players.online"),
            sample=tuple(
                Player(
                    name=_str(p.get("name"), "players.sample.name"),
                    id=_str(p.get("id"), "players.sample.id"),
                )
                for p in (_object(p, "players.sample") for p in sample)
            ),
        ),
        version=Version(
            name=_str(version.get("name"), "version.name"),
            protocol=_int(version.get("protocol"), "version.protocol"),
        ),
        favicon=_str(data.get("favicon"), "favicon"),
    )
