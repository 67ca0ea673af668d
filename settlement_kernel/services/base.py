"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Provides the common constructor and session-handling contract for
    every service in the kernel layer.  All concrete services receive a
    SQLAlchemy ``Session`` that they use via ``session.execute()`` /
    ``session.flush()`` -- never ``session.commit()``.

Invariants enforced:
    Transaction boundaries: services work inside the caller's transaction
    and never commit or rollback themselves.  The caller
    (MarketplaceOrchestrator, CLI, or test harness) owns commit/rollback,
    which is what makes a multi-statement settlement all-or-nothing.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseService(ABC):
    """
    Abstract base class for all kernel services.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide query-only methods -- those belong in
          ``settlement_kernel/selectors/``.
    """

    def __init__(self, session: Session):
        self.session = session
