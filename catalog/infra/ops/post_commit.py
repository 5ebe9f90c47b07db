"""Post-commit hooks for the write path.

Ce module permet de déclencher des actions (ex: notification de création) uniquement après
qu'une transaction SQLAlchemy ait été effectivement commitée. En cas de rollback, les actions
planifiées sont oubliées. Fonctionne avec `Session` comme avec `AsyncSession` (via
`sync_session`).
"""

from __future__ import annotations

import functools
from collections.abc import Callable
from typing import Any

import structlog
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

_ACTIONS_KEY = "_post_commit_actions"

log = structlog.get_logger(__name__)


def _sync_session(session: Session | AsyncSession) -> Session:
    return session.sync_session if isinstance(session, AsyncSession) else session


def _ensure_action_list(session: Session) -> list[Callable[[], Any]]:
    """Ensure action list container exists on session.info and return it."""
    actions = session.info.get(_ACTIONS_KEY)
    if actions is None:
        actions = []
        session.info[_ACTIONS_KEY] = actions
        _bind_session_events(session)
    return actions


def _bind_session_events(session: Session) -> None:
    """Bind commit/rollback events once for the given session instance."""
    # Guard to avoid double binding on same instance
    if session.info.get("_post_commit_bound"):
        return
    session.info["_post_commit_bound"] = True

    @event.listens_for(session, "after_commit")
    def _after_commit(_session: Session) -> None:
        actions = list(_session.info.get(_ACTIONS_KEY, []) or [])
        _session.info[_ACTIONS_KEY] = []
        for action in actions:
            # La transaction est déjà commitée: une action en échec ne doit pas casser le flux
            try:
                action()
            except Exception:
                log.exception("post_commit_action_failed", action=repr(action))

    @event.listens_for(session, "after_rollback")
    def _after_rollback(_session: Session) -> None:
        # Purge les actions planifiées si la transaction est rollback
        dropped = len(_session.info.get(_ACTIONS_KEY, []) or [])
        _session.info[_ACTIONS_KEY] = []
        if dropped:
            log.debug("post_commit_actions_dropped", count=dropped)


def register_action_after_commit(
    session: Session | AsyncSession,
    func: Callable[..., Any],
    *args,
    **kwargs,
) -> None:
    """Register an arbitrary callable to run after a successful commit.

    La fonction est stockée dans la session et exécutée lors de l'évènement
    `after_commit`. En cas de rollback, elle est oubliée.
    """
    bound = functools.partial(func, *args, **kwargs)
    _ensure_action_list(_sync_session(session)).append(bound)


__all__ = ["register_action_after_commit"]
