"""mehtrics.core

Core primitives: events, the bus, the network signal, config and errors.

Nothing in here knows about HTTP or SQLite.
"""

from .bus import EventBus, EventHandler, FunctionHandler
from .config import Config
from .events import Event, EventType, create_event
from .exceptions import MehtricsError
from .network import NetworkMonitor
from .time import parse_dt, utc_now

__all__ = [
    "Config",
    "Event",
    "EventBus",
    "EventHandler",
    "EventType",
    "FunctionHandler",
    "MehtricsError",
    "NetworkMonitor",
    "create_event",
    "parse_dt",
    "utc_now",
]
