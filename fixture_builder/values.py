from __future__ import annotations

import json
from collections.abc import Mapping
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import JSON, Column, Enum, Table, TypeDecorator
from sqlalchemy.engine import Dialect

CREATED_AT = "created_at"
UPDATED_AT = "updated_at"
ENCRYPTED_SUFFIXES = ("_ciphertext", "_bidx")


def transform_attributes(
    attributes: Mapping[str, object],
    table: Table,
    dialect: Dialect,
    recent_window: timedelta,
    now: datetime,
    instance: object | None = None,
) -> dict[str, object]:
    """
    Rewrite the raw column values of a row into portable fixture values.

    Only columns declared by the table are kept. Regeneration expressions for encrypted columns
    are only produced if the mapped instance of the row is available.
    """
    attrs = {k: v for k, v in attributes.items() if k in table.c}

    replace_decimal_values(attrs)
    encrypted = replace_encrypted_values(attrs, instance) if instance is not None else set()
    exclude_default_system_timestamps(attrs, recent_window, now)
    exclude_none_values(attrs)

    return {
        k: v if k in encrypted else serialized_value_if_needed(table.c[k], v, dialect)
        for k, v in attrs.items()
    }


def replace_decimal_values(attrs: dict[str, object]) -> None:
    for key, value in attrs.items():
        if isinstance(value, Decimal):
            attrs[key] = float(value)


def replace_encrypted_values(attrs: dict[str, object], instance: object) -> set[str]:
    replaced = set()
    for key in attrs:
        if key.endswith(ENCRYPTED_SUFFIXES):
            attrs[key] = regeneration_expression(instance, key)
            replaced.add(key)
    return replaced


def regeneration_expression(instance: object, column: str) -> str:
    """
    Return a template expression which recomputes an encrypted column from its plaintext.

    The expression is rendered when the fixture is loaded, so that the ciphertext matches the
    key of the loading environment.
    """
    attribute = column
    for suffix in ENCRYPTED_SUFFIXES:
        attribute = attribute.removesuffix(suffix)
    plaintext = getattr(instance, attribute)
    argument = json.dumps("" if plaintext is None else str(plaintext))
    return f"{{{{ {type(instance).__name__}.generate_{column}({argument}) }}}}"


def exclude_default_system_timestamps(
    attrs: dict[str, object], recent_window: timedelta, now: datetime
) -> None:
    attrs.pop(UPDATED_AT, None)

    created_at = attrs.get(CREATED_AT)
    if isinstance(created_at, datetime) and is_recent(created_at, recent_window, now):
        del attrs[CREATED_AT]


def is_recent(timestamp: datetime, recent_window: timedelta, now: datetime) -> bool:
    """
    Check if the timestamp lies in the trailing window which ends at `now`.

    Naive timestamps are compared against both the local time and UTC, as application defaults
    usually produce the former and database defaults (e.g., `CURRENT_TIMESTAMP`) the latter.
    """
    if timestamp.tzinfo is not None:
        candidates = [now.astimezone(timestamp.tzinfo)]
    else:
        candidates = [
            now.astimezone().replace(tzinfo=None),
            now.astimezone(timezone.utc).replace(tzinfo=None),
        ]
    return any(n - recent_window <= timestamp <= n for n in candidates)


def exclude_none_values(attrs: dict[str, object]) -> None:
    for key in [k for k, v in attrs.items() if v is None]:
        del attrs[key]


def serialized_value_if_needed(column: Column[object], value: object, dialect: Dialect) -> object:
    column_type = column.type

    if isinstance(value, (int, float)):
        return value
    if isinstance(column_type, JSON):
        return value
    if isinstance(column_type, TypeDecorator) and _has_process_bind_param(column_type):
        return column_type.process_bind_param(value, dialect)
    if isinstance(column_type, (TypeDecorator, Enum)):
        processor = column_type.bind_processor(dialect)
        return processor(value) if processor else value

    return value


def _has_process_bind_param(column_type: TypeDecorator[object]) -> bool:
    return type(column_type).process_bind_param is not TypeDecorator.process_bind_param

