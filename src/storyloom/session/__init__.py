"""Player session state and its lifecycle."""

from __future__ import annotations

from storyloom.session.state import (
    GameSession,
    SessionState,
    SessionStatus,
    ensure_aware,
    parse_timestamp,
)

__all__ = ["GameSession", "SessionState", "SessionStatus", "ensure_aware", "parse_timestamp"]
