r"""Command line tools."""
