"""Tracking engine: watchlist, delta detection, alert TTL, scheduling."""

from predwatch.tracking.alerts import AlertStore
from predwatch.tracking.detector import DeltaDetector
from predwatch.tracking.engine import MarketTracker, UnknownVenueError
from predwatch.tracking.notifier import BellNotifier, CommandNotifier, Notifier, NullNotifier
from predwatch.tracking.scheduler import PeriodicTask, Scheduler
from predwatch.tracking.watchlist import Watchlist

__all__ = [
    "AlertStore",
    "BellNotifier",
    "CommandNotifier",
    "DeltaDetector",
    "MarketTracker",
    "Notifier",
    "NullNotifier",
    "PeriodicTask",
    "Scheduler",
    "UnknownVenueError",
    "Watchlist",
]
