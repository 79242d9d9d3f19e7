"""Volatility stop and moving-average trend signal engine."""

from .config import AppConfig, load_config
from .engine import SignalEngine
from .errors import InsufficientDataError

__all__ = ["AppConfig", "InsufficientDataError", "SignalEngine", "load_config"]
