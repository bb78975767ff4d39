import sentry_sdk

from . import config
from .errors import (
    DecodeError,
    PingError,
    ProtocolError,
    ServerConnectionError,
    ValidationError,
)
from .logger import Logger
from .pinger import Pinger, SessionState
from .reply import PingOptions, PingReply, Player, Players, Version, decode
from .text import Text


class Utils:
    """A class to hold all the pingutils classes"""

    def __init__(
        self,
        log: Logger = None,
        debug: bool = config.DEBUG,
        level: int = config.LOG_LEVEL,
        log_file: str = config.LOG_FILE,
        sentry_dsn: str = config.SENTRY_DSN,
        ssdk: "sentry_sdk" = None,
    ):
        """Initializes the pingutils class

        Args:
            log (Logger, optional): The logger to use. Default to None
            debug (bool, optional): Whether to use debug mode. Default to config.DEBUG
            level (int, optional): The logging level to use. Default to config.LOG_LEVEL
            log_file (str, optional): A file to also log to. Default to config.LOG_FILE
            sentry_dsn (str, optional): The sentry dsn to use. Default to config.SENTRY_DSN
            ssdk (sentry_sdk, optional): The sentry_sdk to use. Default to None
        """
        if log is None:
            self.logger = Logger(
                debug=debug,
                level=level,
                log_file=log_file,
                sentry_dsn=sentry_dsn,
                ssdk=ssdk,
            )
        else:
            self.logger = log

        self.text = Text(logger=self.logger)
        self.pinger = Pinger(logger=self.logger, text=self.text)


def ping(
    hostname: str,
    port: int = config.DEFAULT_PORT,
    timeout: int = config.DEFAULT_TIMEOUT,
    charset: str = config.DEFAULT_CHARSET,
) -> PingReply:
    """Pings a server with a default Pinger

    Args:
        hostname (str): The host to ping
        port (int, optional): The port. Default to 25565
        timeout (int, optional): Connect timeout in milliseconds. Default to 2000
        charset (str, optional): The charset of the status document. Default to UTF-8

    Returns:
        PingReply: The server status
    """
    return Pinger().ping(
        PingOptions(hostname=hostname, port=port, timeout=timeout, charset=charset)
    )


__all__ = [
    "DecodeError",
    "Logger",
    "PingError",
    "PingOptions",
    "PingReply",
    "Pinger",
    "Player",
    "Players",
    "ProtocolError",
    "ServerConnectionError",
    "SessionState",
    "Text",
    "Utils",
    "ValidationError",
    "Version",
    "decode",
    "ping",
]
