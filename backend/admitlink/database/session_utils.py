"""
Helpers for working with SQLAlchemy sessions in a dialect-agnostic way.
"""

from __future__ import annotations

from sqlalchemy.orm import Session


def get_dialect_name(session: Session, default: str = "sqlite") -> str:
    """
    Return the SQLAlchemy dialect name of the engine a session is bound to.

    Falls back to ``default`` when the session has no resolvable bind.
    """
    try:
        bind = session.get_bind()
    except Exception:
        return default
    dialect = getattr(bind, "dialect", None)
    name = getattr(dialect, "name", None)
    return name or default


def supports_row_locks(session: Session) -> bool:
    """True when the backend honours SELECT ... FOR UPDATE."""
    return get_dialect_name(session) not in {"sqlite"}
