"""Units of work over the configuration and user-account tables."""

import asyncio
import logging
import threading
from types import TracebackType
from typing import Any, Callable, Optional, Set, Type

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ...exceptions import ArgumentNullError, ConcurrencyConflict, \
    DisposedError, PersistenceError
from ...options import StoreOptions
from . import repositories, util

logger = logging.getLogger(__name__)


class UnitOfWork:
    """
    A database session that is saved atomically and released exactly once.

    A unit of work is meant for a single logical operation (e.g. one request)
    and must not be shared between threads. Use it as a (async) context
    manager, or call :meth:`close` when done; any operation afterwards
    raises :class:`.DisposedError`.
    """

    def __init__(self, engine: Engine, options: StoreOptions) -> None:
        if engine is None:
            raise ArgumentNullError('engine')
        if options is None:
            raise ArgumentNullError('options')
        self._options = options
        self._session: Optional[Session] = Session(
            bind=util.bind(engine, options),
            autoflush=False
        )
        self._changed: Set[Any] = set()
        self._lock = threading.Lock()
        event.listen(self._session, 'after_flush', self._count_affected)
        logger.debug('Opened %s', type(self).__name__)

    @property
    def options(self) -> StoreOptions:
        return self._options

    @property
    def session(self) -> Session:
        """The underlying session; raises once the store is released."""
        self._check_open()
        return self._session  # type: ignore

    @property
    def closed(self) -> bool:
        return self._session is None

    def _check_open(self) -> None:
        if self._session is None:
            raise DisposedError(f'{type(self).__name__} has been closed')

    def _count_affected(self, session: Session, _: Any) -> None:
        # A row written by several flushes is counted once.
        self._changed.update(session.new)
        self._changed.update(session.deleted)
        self._changed.update(
            obj for obj in session.dirty
            if session.is_modified(obj, include_collections=False)
        )

    def _write(self, operation: Callable[[], None]) -> None:
        try:
            operation()
        except StaleDataError as e:
            self._rollback(e)
            raise ConcurrencyConflict(str(e)) from e
        except SQLAlchemyError as e:
            self._rollback(e)
            raise PersistenceError(str(e)) from e

    def flush(self) -> None:
        """
        Write staged changes to the open transaction without committing.

        Repositories flush when a later change depends on an earlier one
        reaching the database first. Failures are handled as in
        :meth:`save_changes`.
        """
        self._write(self.session.flush)

    def save_changes(self) -> int:
        """
        Commit all staged changes.

        Returns
        -------
        int
            The number of rows inserted, updated or deleted.

        Raises
        ------
        :class:`.ConcurrencyConflict`
            A versioned row was changed by someone else since it was loaded.
        :class:`.PersistenceError`
            The database rejected the transaction. Nothing was written.

        """
        with self._lock:
            self._write(self.session.commit)
            affected = len(self._changed)
            self._changed.clear()
        logger.debug('Saved %i rows', affected)
        return affected

    async def save_changes_async(self, timeout: Optional[float] = None) \
            -> int:
        """
        Commit all staged changes without blocking the event loop.

        The commit runs in a worker thread. If ``timeout`` (default
        :attr:`.StoreOptions.save_timeout`) expires or the caller is
        cancelled, the commit still runs to completion in the background;
        :meth:`close` waits for it.
        """
        self._check_open()
        if timeout is None:
            timeout = self._options.save_timeout
        return await asyncio.wait_for(asyncio.to_thread(self.save_changes),
                                      timeout)

    def rollback(self) -> None:
        """Discard all staged changes."""
        self.session.rollback()
        self._changed.clear()

    def _rollback(self, error: Exception) -> None:
        logger.error('Commit failed, rolling back: %s', str(error))
        self._changed.clear()
        self.session.rollback()

    def close(self) -> None:
        """Release the session; uncommitted changes are discarded."""
        with self._lock:
            if self._session is None:
                return
            session, self._session = self._session, None
            session.close()
        logger.debug('Closed %s', type(self).__name__)

    async def close_async(self) -> None:
        await asyncio.to_thread(self.close)

    def __enter__(self) -> 'UnitOfWork':
        self._check_open()
        return self

    def __exit__(self, exc_type: Optional[Type[BaseException]],
                 exc: Optional[BaseException],
                 tb: Optional[TracebackType]) -> None:
        self.close()

    async def __aenter__(self) -> 'UnitOfWork':
        self._check_open()
        return self

    async def __aexit__(self, exc_type: Optional[Type[BaseException]],
                        exc: Optional[BaseException],
                        tb: Optional[TracebackType]) -> None:
        await self.close_async()


class ConfigurationStore(UnitOfWork):
    """Clients, identity resources and API resources."""

    def __init__(self, engine: Engine, options: StoreOptions) -> None:
        super().__init__(engine, options)
        self.clients = repositories.ClientRepository(self)
        self.identity_resources = \
            repositories.IdentityResourceRepository(self)
        self.api_resources = repositories.ApiResourceRepository(self)

    def __enter__(self) -> 'ConfigurationStore':
        super().__enter__()
        return self

    async def __aenter__(self) -> 'ConfigurationStore':
        await super().__aenter__()
        return self


class UserAccountStore(UnitOfWork):
    """User accounts with their external accounts and claims."""

    def __init__(self, engine: Engine, options: StoreOptions) -> None:
        super().__init__(engine, options)
        self.user_accounts = repositories.UserAccountRepository(self)
        self.external_accounts = repositories.ExternalAccountRepository(self)
        self.user_account_claims = \
            repositories.UserAccountClaimRepository(self)

    def __enter__(self) -> 'UserAccountStore':
        super().__enter__()
        return self

    async def __aenter__(self) -> 'UserAccountStore':
        await super().__aenter__()
        return self
