r"""Logging configuration of command line tools."""

from __future__ import annotations

from argparse import Namespace
from enum import Enum
import logging
from logging import Logger
from typing import Optional, Union


LOG_FORMAT = "%(asctime)-15s [%(levelname)s] %(message)s"


class LogLevel(str, Enum):
    r"""Enumeration of logging levels, e.g., choices of a ``--log-level`` command line argument."""

    NOTSET = "NOTSET"
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    @classmethod
    def from_arg(cls, arg: Union[LogLevel, int, str]) -> LogLevel:
        r"""Get log level from enumeration value, case insensitive name, or ``logging`` constant."""
        if isinstance(arg, LogLevel):
            return arg
        if isinstance(arg, str):
            return cls(arg.upper())
        if isinstance(arg, int) and not isinstance(arg, bool):
            name = logging.getLevelName(arg)
            if name in cls.__members__:
                return cls(name)
            raise ValueError(f"{cls.__name__}.from_arg() unknown logging level {arg}")
        raise TypeError(f"{cls.__name__}.from_arg() 'arg' must be LogLevel, int, or str")

    def __str__(self) -> str:
        return self.value

    def __int__(self) -> int:
        r"""Numeric ``logging`` level."""
        return logging.getLevelName(self.value)


LOG_LEVELS = tuple(log_level.value for log_level in LogLevel)


def configure_logging(
    logger: Logger,
    args: Optional[Namespace] = None,
    log_level: Optional[Union[int, str, LogLevel]] = None,
    format: Optional[str] = None,
) -> LogLevel:
    r"""Initialize logging of a command line tool.

    Args:
        logger: Logger of the command line tool.
        args: Parsed arguments. The ``log_level`` attribute overrides ``log_level`` when present.
        log_level: Logging level. Default is ``INFO``.
        format: Format of log messages. Default is ``LOG_FORMAT``.

    Returns:
        Log level which was set.

    """
    logging.basicConfig(format=format or LOG_FORMAT)
    if args is not None:
        log_level = getattr(args, "log_level", log_level)
    level = LogLevel.INFO if log_level is None else LogLevel.from_arg(log_level)
    logger.setLevel(int(level))
    return level
