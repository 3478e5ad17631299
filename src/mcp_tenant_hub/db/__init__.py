"""
PostgreSQL access: connection pool, repositories and change notifications.
"""

from .database import Database
from .listener import ChangeListener, ListenerHandle

__all__ = ["Database", "ChangeListener", "ListenerHandle"]
