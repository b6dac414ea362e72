"""Tests for logging_utils: CLI log level resolution and setup."""

from __future__ import annotations

import argparse
import logging

import pytest

from logging_utils import add_logging_args, configure_logging, resolve_log_level


@pytest.mark.parametrize(
    "log_level,verbose,quiet,expected",
    [
        (None, 0, 0, logging.INFO),
        (None, 1, 0, logging.DEBUG),
        (None, 0, 1, logging.WARNING),
        (None, 0, 2, logging.ERROR),
        ("DEBUG", 0, 2, logging.DEBUG),
    ],
)
def test_resolve_log_level(log_level, verbose, quiet, expected):
    assert resolve_log_level(log_level, verbose, quiet) == expected


def test_logging_args_parse():
    parser = argparse.ArgumentParser()
    add_logging_args(parser)
    args = parser.parse_args(["-qq"])
    assert (args.log_level, args.verbose, args.quiet) == (None, 0, 2)


def test_configure_only_touches_root_logger():
    root = logging.getLogger()
    previous = root.level
    other = logging.getLogger("benchmarking.some_dependency")
    try:
        assert configure_logging(verbose=1) == logging.DEBUG
        assert root.level == logging.DEBUG
        assert other.level == logging.NOTSET
    finally:
        root.setLevel(previous)
