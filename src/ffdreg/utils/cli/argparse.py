r"""Auxiliary functions for implementing argparse based command line interfaces."""

import argparse
from argparse import Namespace
from typing import Callable, List, Optional


ArgumentParser = argparse.ArgumentParser
ParsedArguments = Namespace

MainCallable = Callable[[Optional[List[str]]], int]
ParserCallable = Callable[..., ArgumentParser]


def main_func(
    parser: ParserCallable,
    func: Callable[[ParsedArguments], int],
    init: Optional[Callable[[ParsedArguments], int]] = None,
) -> MainCallable:
    r"""Create main function of command line tool.

    Args:
        parser: Function which constructs the argument parser.
        func: Function which executes the tool given the parsed arguments.
        init: Optional function which is called before ``func``. When it returns
            a non-zero exit code, ``func`` is not executed.

    Returns:
        Main function which takes an optional list of command line arguments,
        and which returns the exit code.

    """

    def main(argv: Optional[List[str]] = None) -> int:
        args = parser().parse_args(argv)
        if init is not None:
            exit_code = init(args)
            if exit_code != 0:
                return exit_code
        return func(args)

    return main
