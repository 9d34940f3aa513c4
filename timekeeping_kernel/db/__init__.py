"""Database infrastructure for the timekeeping kernel."""

from timekeeping_kernel.db.base import Base, TrackedBase, UTCDateTime, UUIDString
from timekeeping_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_engine,
    get_session,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
    run_in_transaction,
    session_scope,
)

__all__ = [
    "Base",
    "TrackedBase",
    "UUIDString",
    "UTCDateTime",
    "init_engine_from_url",
    "get_engine",
    "get_session",
    "get_session_factory",
    "session_scope",
    "run_in_transaction",
    "create_tables",
    "drop_tables",
    "reset_engine",
]
