r"""Auxiliary functions for implementing argparse based command line interfaces."""

from ...core.logging import LOG_FORMAT
from ...core.logging import LOG_LEVELS
from ...core.logging import LogLevel
from ...core.logging import configure_logging

from .argparse import ArgumentParser
from .argparse import main_func
from .argparse import MainCallable
from .argparse import ParserCallable
from .argparse import ParsedArguments


Args = ParsedArguments


__all__ = (
    "Args",
    "ArgumentParser",
    "LogLevel",
    "LOG_FORMAT",
    "LOG_LEVELS",
    "configure_logging",
    "main_func",
    "MainCallable",
    "ParsedArguments",
    "ParserCallable",
)
