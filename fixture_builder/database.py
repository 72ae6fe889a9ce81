from __future__ import annotations

import sqlite3
from collections.abc import Iterable, Iterator
from contextlib import contextmanager

from sqlalchemy import Connection, Engine, create_engine, delete, event, inspect, pool, table


def get_engine(database: str, sqlite_foreign_key_support: bool = True) -> Engine:
    engine = create_engine(database)
    if sqlite_foreign_key_support and engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _set_sqlite_pragma)
    return engine


def _set_sqlite_pragma(
    dbapi_connection: sqlite3.Connection, _: pool.base._ConnectionRecord
) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def table_names(engine: Engine, tables: list[str] | None, skip_tables: Iterable[str]) -> list[str]:
    skip = set(skip_tables)
    if tables is None:
        tables = sorted(inspect(engine).get_table_names())
    return [t for t in tables if t not in skip]


@contextmanager
def disable_referential_integrity(connection: Connection) -> Iterator[None]:
    """
    Disable the enforcement of foreign key constraints on the connection.

    SQLite ignores changes of the foreign key setting inside a transaction, so the changes done
    inside the context must be committed before leaving it.
    """
    dialect = connection.dialect.name

    if dialect == "sqlite":
        enabled = connection.exec_driver_sql("PRAGMA foreign_keys").scalar()
        connection.exec_driver_sql("PRAGMA foreign_keys=OFF")
        try:
            yield
        finally:
            connection.exec_driver_sql(f"PRAGMA foreign_keys={'ON' if enabled else 'OFF'}")
    elif dialect == "postgresql":
        connection.exec_driver_sql("SET session_replication_role = replica")
        try:
            yield
        finally:
            connection.exec_driver_sql("SET session_replication_role = DEFAULT")
    elif dialect in ("mysql", "mariadb"):
        connection.exec_driver_sql("SET FOREIGN_KEY_CHECKS = 0")
        try:
            yield
        finally:
            connection.exec_driver_sql("SET FOREIGN_KEY_CHECKS = 1")
    else:
        yield


def delete_tables(engine: Engine, names: Iterable[str]) -> None:
    with engine.connect() as connection:
        with disable_referential_integrity(connection):
            for name in names:
                connection.execute(delete(table(name)))
            connection.commit()
        connection.commit()
