"""Core module containing data models, converters, configuration and the snapshot cache."""

from .models import (
    Request,
    RequestError,
    RequestMode,
    Snapshot,
    TypedValue,
    ValueType,
)
from .config import Config

__all__ = [
    "Request",
    "RequestError",
    "RequestMode",
    "Snapshot",
    "TypedValue",
    "ValueType",
    "Config",
]
