"""Collectors module for reading the apcupsd status feed."""

from .apcupsd_collector import (
    ApcupsdCollector,
    FeedConnectError,
    FeedError,
    FeedFramingError,
    FeedTimeoutError,
)

__all__ = [
    "ApcupsdCollector",
    "FeedError",
    "FeedConnectError",
    "FeedTimeoutError",
    "FeedFramingError",
]
