from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Protocol

from sqlalchemy import Column, Engine, MetaData, Table, inspect, select
from sqlalchemy.orm import DeclarativeBase, Mapper, Session, registry


@dataclass
class LoadedRow:
    attributes: dict[str, object]
    instance: object | None = field(default=None)


class FixtureTable(Protocol):
    @property
    def name(self) -> str:
        ...

    @property
    def table(self) -> Table:
        ...

    def rows(self, session: Session, order_by: str) -> Iterator[LoadedRow]:
        ...


class TypedTable:
    """Table governed by a mapped class, rows are loaded through the ORM."""

    def __init__(self, model: type) -> None:
        self.model = model
        self.mapper: Mapper[object] = inspect(model)
        self.table: Table = self.mapper.local_table  # type: ignore[assignment]

    @property
    def name(self) -> str:
        return self.table.name

    def rows(self, session: Session, order_by: str) -> Iterator[LoadedRow]:
        statement = select(self.model).order_by(*self.ordering(order_by))

        for instance in session.scalars(statement):
            yield LoadedRow(
                {
                    column.name: getattr(instance, self.mapper.get_property_by_column(column).key)
                    for column in self.table.columns
                },
                instance,
            )

    def ordering(self, order_by: str) -> list[Column[object]]:
        primary_key = list(self.mapper.primary_key)
        column = self.table.c.get(order_by)
        if column is None or any(column is c for c in primary_key):
            return primary_key
        return [column, *primary_key]


class RawTable:
    """Table without a mapped class, rows are read unfiltered and unordered."""

    def __init__(self, table: Table) -> None:
        self.table = table

    @property
    def name(self) -> str:
        return self.table.name

    def rows(self, session: Session, order_by: str) -> Iterator[LoadedRow]:
        for row in session.execute(select(self.table)):
            yield LoadedRow(dict(row._mapping))


def _registry(base: type[DeclarativeBase] | registry) -> registry:
    return base if isinstance(base, registry) else base.registry


def mapped_tables(base: type[DeclarativeBase] | registry | None) -> dict[str, type]:
    """Return the mapped class governing each table, subclasses sharing a table are ignored."""
    if base is None:
        return {}

    result: dict[str, type] = {}

    for mapper in _registry(base).mappers:
        if mapper.inherits is not None and mapper.inherits.local_table is mapper.local_table:
            continue
        if isinstance(mapper.local_table, Table):
            result.setdefault(mapper.local_table.name, mapper.class_)

    return result


def model_tables(base: type[DeclarativeBase] | registry | None) -> dict[str, str]:
    """Map class names and table names to table names for resolving polymorphic types."""
    if base is None:
        return {}

    result: dict[str, str] = {}

    for mapper in _registry(base).mappers:
        if isinstance(mapper.local_table, Table):
            result[mapper.class_.__name__] = mapper.local_table.name
            result.setdefault(mapper.local_table.name, mapper.local_table.name)

    return result


def model_classes(base: type[DeclarativeBase] | registry | None) -> dict[str, type]:
    if base is None:
        return {}
    return {mapper.class_.__name__: mapper.class_ for mapper in _registry(base).mappers}


def known_tables(
    engine: Engine, table_names: list[str], base: type[DeclarativeBase] | registry | None
) -> list[FixtureTable]:
    models = mapped_tables(base)
    metadata = MetaData()

    return [
        TypedTable(models[name])
        if name in models
        else RawTable(Table(name, metadata, autoload_with=engine))
        for name in table_names
    ]
