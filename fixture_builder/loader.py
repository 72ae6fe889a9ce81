"""
Load fixture files into the database.

Fixture files written by the builder reference other records by their symbolic names. When such
files are loaded, ids are derived from the names, so that references stay consistent without
storing any database generated ids.
"""

from __future__ import annotations

import re
import zlib
from collections.abc import Iterable, Mapping
from datetime import date, datetime, time
from pathlib import Path

from jinja2 import Environment, StrictUndefined
from sqlalchemy import (
    Column,
    Connection,
    Date,
    DateTime,
    LargeBinary,
    MetaData,
    PickleType,
    Table,
    Time,
    insert,
)

from fixture_builder.namer import Namer
from fixture_builder.references import FOREIGN_KEY_SUFFIX, PRIMARY_KEY
from fixture_builder.writer import decode_binary, read_fixture_file

MAX_ID = 2**30 - 1

_REFERENCE = re.compile(r"^(?P<label>.*) \((?P<type>[^()]+)\)$")


def identify(label: str) -> int:
    return zlib.crc32(label.encode("utf-8")) % MAX_ID


def create_environment() -> Environment:
    return Environment(undefined=StrictUndefined, autoescape=False)


def render_value(value: object, environment: Environment, context: Mapping[str, object]) -> object:
    if isinstance(value, str) and "{{" in value:
        return environment.from_string(value).render(context)
    return value


def resolve_labels(name: str, row: dict[str, object], table: Table) -> None:
    if PRIMARY_KEY in table.c and PRIMARY_KEY not in row:
        row[PRIMARY_KEY] = identify(name)

    for key in [k for k in row if k not in table.c]:
        value = row[key]
        foreign_key = f"{key}{FOREIGN_KEY_SUFFIX}"
        type_key = f"{key}_type"

        if foreign_key not in table.c or not isinstance(value, str):
            continue

        match = _REFERENCE.match(value)
        if match and type_key in table.c:
            row[foreign_key] = identify(match.group("label"))
            row[type_key] = match.group("type")
        else:
            row[foreign_key] = identify(value)

        del row[key]


def column_value(column: Column[object], value: object) -> object:
    if isinstance(value, str):
        if isinstance(column.type, DateTime):
            return datetime.fromisoformat(value)
        if isinstance(column.type, Date):
            return date.fromisoformat(value)
        if isinstance(column.type, Time):
            return time.fromisoformat(value)
    if isinstance(column.type, (LargeBinary, PickleType)):
        data = decode_binary(value)
        if data is not None:
            return column.type.pickler.loads(data) if isinstance(column.type, PickleType) else data
    return value


def load_fixtures(
    connection: Connection,
    path: Path,
    metadata: MetaData | None = None,
    context: Mapping[str, object] | None = None,
) -> tuple[str, dict[str, dict[str, object]]]:
    """Insert the records of a fixture file into the table named like the file."""
    table_name = path.stem

    if metadata is not None and table_name in metadata.tables:
        table = metadata.tables[table_name]
    else:
        table = Table(table_name, MetaData(), autoload_with=connection)

    environment = create_environment()
    fixtures = {}

    for name, values in read_fixture_file(path).items():
        row = {k: render_value(v, environment, context or {}) for k, v in values.items()}
        resolve_labels(name, row, table)
        fixtures[name] = {k: column_value(table.c[k], v) for k, v in row.items()}

    for row in fixtures.values():
        connection.execute(insert(table).values(row))

    return table_name, fixtures


def load_legacy_fixtures(
    connection: Connection,
    paths: Iterable[Path],
    namer: Namer,
    metadata: MetaData | None = None,
    context: Mapping[str, object] | None = None,
) -> None:
    for path in paths:
        table_name, fixtures = load_fixtures(connection, path, metadata, context)
        namer.populate_custom_names(table_name, fixtures)
