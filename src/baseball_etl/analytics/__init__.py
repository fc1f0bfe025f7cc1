"""Derived analytical tables."""

from .win_expectancy import (
    NAMED_ERAS,
    WinExpectancyBuilder,
    get_win_expectancy,
    parse_era,
    validate_eras,
)

__all__ = [
    "NAMED_ERAS",
    "WinExpectancyBuilder",
    "get_win_expectancy",
    "parse_era",
    "validate_eras",
]
