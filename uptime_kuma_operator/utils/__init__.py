"""Utility modules for the operator."""
from .config import Config
from .helpers import KeyedLocks, RetryTimers, StripedLocks, build_monitor_name, get_annotation, parse_int, utc_now

__all__ = ["Config", "KeyedLocks", "RetryTimers", "StripedLocks",
           "build_monitor_name", "get_annotation", "parse_int", "utc_now"]
