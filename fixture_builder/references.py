from __future__ import annotations

from collections.abc import Collection, Mapping

from sqlalchemy import Table

from fixture_builder.namer import Namer

PRIMARY_KEY = "id"
FOREIGN_KEY_SUFFIX = "_id"


def use_generated_ids(
    record: dict[str, object],
    table: Table,
    namer: Namer,
    excluded_column_names: Collection[str],
    model_tables: Mapping[str, str],
    raw_values: Mapping[str, object] | None = None,
) -> dict[str, object]:
    """
    Replace the primary key and resolvable foreign keys of a record by symbolic names.

    A foreign key `<prefix>_id` is replaced by `<prefix>`. If a non-empty `<prefix>_type` column
    exists, the reference is polymorphic and the value has the form `<name> (<type>)`.
    Foreign keys to records without a registered name are kept unchanged. If given, the ids are
    taken from `raw_values` instead of the record.
    """
    record.pop(PRIMARY_KEY, None)

    for key in [k for k in record if k.endswith(FOREIGN_KEY_SUFFIX)]:
        if key in excluded_column_names:
            continue

        key_prefix = key.removesuffix(FOREIGN_KEY_SUFFIX)
        type_key = f"{key_prefix}_type"
        polymorphic_type = record.get(type_key)

        if polymorphic_type:
            target = model_tables.get(str(polymorphic_type))
        else:
            target = referenced_table(table, key)

        raw_id = record[key] if raw_values is None else raw_values.get(key, record[key])
        name = namer.lookup(raw_id, target)
        if name is None:
            continue

        if polymorphic_type:
            record[key_prefix] = f"{name} ({polymorphic_type})"
            del record[type_key]
        else:
            record[key_prefix] = name

        del record[key]

    return record


def referenced_table(table: Table, column_name: str) -> str | None:
    column = table.c.get(column_name)
    if column is None:
        return None
    for foreign_key in column.foreign_keys:
        table_fullname = foreign_key.target_fullname.rsplit(".", 1)[0]
        return table_fullname.rsplit(".", 1)[-1]
    return None
