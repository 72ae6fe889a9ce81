from __future__ import annotations

import re
from collections.abc import Mapping
from typing import TYPE_CHECKING

from sqlalchemy import inspect

if TYPE_CHECKING:
    from fixture_builder.config import Configuration


class NamingError(Exception):
    pass


class Namer:
    """
    Map database records to the symbolic names used as fixture keys.

    Names are registered by table and raw id. A lookup without a table uses the most recently
    registered name for the raw id, which is only unambiguous for ids that are unique across
    tables (e.g., UUIDs).
    """

    def __init__(self, configuration: Configuration) -> None:
        self._configuration = configuration
        self._custom_names: dict[tuple[str, object], str] = {}
        self._custom_name_ids: dict[object, str] = {}
        self._record_names: dict[str, list[str]] = {}

    def name(self, custom_name: str, *records: object) -> None:
        if not custom_name:
            raise NamingError("cannot name an object blank")

        for record in records:
            if record is None:
                raise NamingError("cannot name a blank object")

            state = inspect(record)
            if state.identity is None:
                raise NamingError(f"cannot name unsaved object {record!r}")

            raw_id = state.identity[0] if len(state.identity) == 1 else state.identity

            for table in state.mapper.tables:
                if (table.name, raw_id) in self._custom_names:
                    raise NamingError(f"cannot set name for {(table.name, raw_id)!r} twice")
                self.assign_name(raw_id, custom_name, table.name)

    def assign_name(self, raw_id: object, name: str, table: str | None = None) -> None:
        if table is not None:
            self._custom_names[(table, raw_id)] = name
        self._custom_name_ids[raw_id] = name

    def lookup(self, raw_id: object, table: str | None = None) -> str | None:
        if table is not None:
            return self._custom_names.get((table, raw_id))
        return self._custom_name_ids.get(raw_id)

    def populate_custom_names(self, table: str, fixtures: Mapping[str, Mapping[str, object]]) -> None:
        for name, row in fixtures.items():
            if row.get("id") is not None:
                self.assign_name(row["id"], name, table)

    def record_name(
        self,
        record: Mapping[str, object],
        table: str,
        row_index: str,
        record_id: object | None = None,
    ) -> str:
        index = _succ(row_index)
        naming_function = self._configuration.naming_function(table)
        if record_id is None:
            record_id = record.get("id")
        custom_name = self._custom_names.get((table, record_id))

        if naming_function:
            name = naming_function(record, index)
        elif custom_name:
            name = custom_name
        else:
            name = self.inferred_record_name(record, table, index)

        self._record_names.setdefault(table, []).append(name)
        return str(name)

    def inferred_record_name(self, record: Mapping[str, object], table: str, index: str) -> str:
        for field in self._configuration.record_name_fields:
            value = record.get(field)
            if value:
                inferred_name = "_".join(re.sub(r"\W", " ", underscore(str(value))).split())
                used = set(self._record_names.get(table, []))
                name = inferred_name
                count = 0
                while name in used:
                    count += 1
                    name = f"{inferred_name}_{count}"
                return name

        return f"{table}_{index}"


def underscore(word: str) -> str:
    word = re.sub(r"([A-Z\d]+)([A-Z][a-z])", r"\1_\2", word)
    word = re.sub(r"([a-z\d])([A-Z])", r"\1_\2", word)
    return word.replace("-", "_").lower()


def _succ(row_index: str) -> str:
    return f"{int(row_index) + 1:0{len(row_index)}d}"
