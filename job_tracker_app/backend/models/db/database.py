"""
Engine, session factory and the owner visibility policy for the relational store.
"""
import logging

from sqlalchemy import Column, ForeignKey, Uuid, create_engine, event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, declared_attr, sessionmaker, with_loader_criteria
from sqlalchemy.pool import StaticPool

from ...config.settings import get_settings

logger = logging.getLogger(__name__)

# Session.info key holding the id of the user the session acts for
OWNER_KEY = "owner_id"


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores ON DELETE CASCADE unless this is set per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(database_url: str, echo: bool = False):
    """Create an engine with the pool settings the given backend needs."""
    kwargs = {"echo": echo}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in database_url:
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True

    engine = create_engine(database_url, **kwargs)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


settings = get_settings()
engine = build_engine(settings.get_database_url(), echo=settings.database_echo)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def check_connection(bind=None) -> bool:
    """Return True when the store answers a trivial query through ``bind``
    (a Session or an Engine, the module engine by default)."""
    try:
        if isinstance(bind, Session):
            bind.execute(text("SELECT 1"))
        else:
            with (bind or engine).connect() as connection:
                connection.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as e:
        logger.error("Database connection check failed: %s", e)
        if isinstance(bind, Session):
            bind.rollback()
        return False


# =============================================================================
# OWNER POLICY
# =============================================================================

class OwnedByUser:
    """
    Mixin for tables whose rows belong to a single user through ``user_id``.

    While a session is bound to an owner (see ``bind_owner``), every ORM SELECT
    of these tables is restricted to that owner's rows, and PostgreSQL
    connections carry the owner in ``app.current_user_id`` for the
    row-level-security policies in ``database/schema.sql``.
    """

    # The owner criteria lambda is evaluated against the mixin as well as its subclasses
    @declared_attr
    def user_id(cls):
        return Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)


def _set_postgres_owner(connection, owner_id) -> None:
    connection.execute(
        text("SELECT set_config('app.current_user_id', :owner_id, true)"),
        {"owner_id": str(owner_id)},
    )


def bind_owner(db: Session, owner_id) -> None:
    """Scope all further owned-row access in ``db`` to ``owner_id``."""
    db.info[OWNER_KEY] = owner_id
    # A transaction already open (e.g. from the token lookup) missed after_begin
    if db.in_transaction():
        connection = db.connection()
        if connection.dialect.name == "postgresql":
            _set_postgres_owner(connection, owner_id)


def release_owner(db: Session) -> None:
    db.info.pop(OWNER_KEY, None)


@event.listens_for(Session, "do_orm_execute")
def _apply_owner_criteria(execute_state):
    owner_id = execute_state.session.info.get(OWNER_KEY)
    if owner_id is None or not execute_state.is_select:
        return
    if execute_state.is_column_load or execute_state.is_relationship_load:
        return
    execute_state.statement = execute_state.statement.options(
        with_loader_criteria(
            OwnedByUser,
            lambda cls: cls.user_id == owner_id,
            include_aliases=True,
        )
    )


@event.listens_for(Session, "after_begin")
def _propagate_owner_to_postgres(session, transaction, connection):
    owner_id = session.info.get(OWNER_KEY)
    if owner_id is not None and connection.dialect.name == "postgresql":
        _set_postgres_owner(connection, owner_id)
