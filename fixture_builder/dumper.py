from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from fixture_builder.namer import Namer
from fixture_builder.references import PRIMARY_KEY, use_generated_ids
from fixture_builder.tables import FixtureTable
from fixture_builder.values import transform_attributes

if TYPE_CHECKING:
    from fixture_builder.config import Configuration


class DuplicateNameError(Exception):
    pass


def dump_table(
    session: Session,
    table: FixtureTable,
    namer: Namer,
    configuration: Configuration,
    model_tables: Mapping[str, str],
    now: datetime,
) -> dict[str, dict[str, object]]:
    """
    Return the named records of a table in the order they are written to the fixture file.

    Names and references are looked up by the loaded values of the keys, not by their serialized
    values.
    """
    dialect = session.get_bind().dialect
    fixture_data: dict[str, dict[str, object]] = {}

    for index, row in enumerate(table.rows(session, configuration.order_by)):
        record = transform_attributes(
            row.attributes,
            table.table,
            dialect,
            configuration.recent_window,
            now,
            instance=row.instance,
        )
        name = namer.record_name(
            record, table.name, f"{index:03d}", record_id=row.attributes.get(PRIMARY_KEY)
        )

        if name in fixture_data:
            raise DuplicateNameError(f"name '{name}' is used twice in table '{table.name}'")

        if configuration.generate_ids:
            use_generated_ids(
                record,
                table.table,
                namer,
                configuration.generate_ids_excluded_column_names,
                model_tables,
                raw_values=row.attributes,
            )

        fixture_data[name] = record

    return fixture_data
