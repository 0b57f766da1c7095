from .session_store import Session, SessionStore, normalize_messages

__all__ = ["Session", "SessionStore", "normalize_messages"]
