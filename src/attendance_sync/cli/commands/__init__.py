"""CLI command modules."""

from .app import SyncApp, pass_app
from .database import db
from .history import history
from .locations import locations
from .logs import logs
from .scheduler import scheduler
from .settings import settings
from .sync import sync

__all__ = [
    "SyncApp",
    "pass_app",
    "db",
    "history",
    "locations",
    "logs",
    "scheduler",
    "settings",
    "sync",
]
