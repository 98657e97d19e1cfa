"""Store gateway: one SQLAlchemy session per use case, committed or rolled back as a unit."""

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import sessionmaker

from ..db.database import WRITE_TRANSACTION_OPTION
from ..repositories.interfaces import RepositoryContainer
from ..repositories.sqlalchemy_impl import build_repository_container
from .integrity_policy import map_database_error


class StoreGateway:
    """Opens units of work over a session factory."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @contextmanager
    def transaction(self) -> Iterator[RepositoryContainer]:
        """Write transaction.

        Commits when the block exits normally. Any exception, including
        cancellation (``KeyboardInterrupt``, ``GeneratorExit``), rolls the
        whole transaction back. Classifiable storage errors are re-raised
        as domain errors; everything else propagates unchanged.
        """
        session = self._session_factory()
        try:
            # Opens the transaction now; on SQLite this takes the write lock
            session.connection(execution_options={WRITE_TRANSACTION_OPTION: True})
            yield build_repository_container(session)
            session.commit()
        except BaseException as exc:
            session.rollback()
            mapped = map_database_error(exc)
            if mapped is not exc:
                raise mapped from exc
            raise
        finally:
            session.close()

    @contextmanager
    def read(self) -> Iterator[RepositoryContainer]:
        """Read-only unit of work; nothing is committed.

        Never takes the SQLite write lock, so reads do not wait for writers.
        """
        session = self._session_factory()
        try:
            yield build_repository_container(session)
        finally:
            session.rollback()
            session.close()
