from __future__ import annotations

import traceback
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Union

from sqlalchemy import Engine, inspect
from sqlalchemy.orm import InstanceState, Session

from fixture_builder import database as db
from fixture_builder.changes import FileHashes
from fixture_builder.config import Configuration
from fixture_builder.dumper import dump_table
from fixture_builder.loader import load_legacy_fixtures
from fixture_builder.namer import Namer
from fixture_builder.tables import FixtureTable, known_tables, model_classes, model_tables
from fixture_builder.utils import say, to_sentence
from fixture_builder.writer import delete_fixture_files, write_fixture_file


@dataclass
class Built:
    files: list[str] = field(default_factory=list)


@dataclass
class SetupFailed:
    error: Exception
    traceback: str


BuildResult = Union[Built, SetupFailed]


class Builder:
    def __init__(
        self,
        configuration: Configuration,
        namer: Namer | None = None,
        engine: Engine | None = None,
    ) -> None:
        self.configuration = configuration
        self.namer = namer or Namer(configuration)
        self.engine = engine or db.get_engine(
            configuration.database, configuration.sqlite_foreign_key_support
        )

    def generate(self) -> BuildResult:
        """
        Rebuild the fixture files from the records created by the factory.

        If the factory raises, no fixture files are written and the error is returned.
        """
        say("Building fixtures")

        tables = self.tables()
        self.clean_out_old_data(tables)

        failure = self.create_fixture_objects()
        if failure:
            return failure

        files = self.write_data_to_files(tables)

        if self.configuration.after_build:
            self.configuration.after_build()

        return Built(files)

    def tables(self) -> list[FixtureTable]:
        names = db.table_names(
            self.engine, self.configuration.tables, self.configuration.skip_tables
        )
        return known_tables(self.engine, names, self.configuration.base)

    def clean_out_old_data(self, tables: list[FixtureTable]) -> None:
        db.delete_tables(self.engine, [t.name for t in tables])
        self.delete_fixture_files(tables)

    def delete_fixture_files(self, tables: list[FixtureTable]) -> None:
        delete_fixture_files(self.configuration.fixture_file(t.name) for t in tables)

    def create_fixture_objects(self) -> SetupFailed | None:
        with Session(self.engine) as session:
            if self.configuration.legacy_fixtures:
                self.load_legacy_fixtures(session)

            try:
                created = self.configuration.factory(session) or {}
                session.flush()
            except Exception as e:  # noqa: BLE001
                session.rollback()
                return SetupFailed(e, traceback.format_exc())

            self.names_from_factory(created)
            session.commit()

        return None

    def load_legacy_fixtures(self, session: Session) -> None:
        base = self.configuration.base
        load_legacy_fixtures(
            session.connection(),
            self.configuration.legacy_fixtures,
            self.namer,
            base.metadata if base is not None else None,
            model_classes(base),
        )

    def names_from_factory(self, created: Mapping[str, object]) -> None:
        for name, value in created.items():
            if isinstance(inspect(value, raiseerr=False), InstanceState):
                self.namer.name(name, value)

    def write_data_to_files(self, tables: list[FixtureTable]) -> list[str]:
        self.delete_fixture_files(tables)
        if self.configuration.write_empty_files:
            self.dump_empty_fixtures_for_all_tables(tables)
        return self.dump_tables(tables)

    def dump_empty_fixtures_for_all_tables(self, tables: list[FixtureTable]) -> None:
        for table in tables:
            write_fixture_file({}, self.configuration.fixture_file(table.name))

    def dump_tables(self, tables: list[FixtureTable]) -> list[str]:
        now = datetime.now(timezone.utc)
        polymorphic_tables = model_tables(self.configuration.base)
        files = []

        with Session(self.engine) as session:
            for table in tables:
                fixture_data = dump_table(
                    session, table, self.namer, self.configuration, polymorphic_tables, now
                )
                if not fixture_data:
                    continue

                fixture_file = self.configuration.fixture_file(table.name)
                write_fixture_file(fixture_data, fixture_file)
                files.append(fixture_file.name)

        say(f"Built {to_sentence(files)}")
        return files


def build_fixtures(configuration: Configuration, force: bool = False) -> BuildResult | None:
    """
    Generate the fixtures if one of the checked files changed since the last build.

    The recorded hashes are removed before building and only written again after a successful
    build.
    """
    hashes = FileHashes(
        configuration.files_to_check, configuration.fixtures_path, configuration.use_sha1_digests
    )

    if not force and not hashes.rebuild_needed():
        say("Fixtures are up to date")
        return None

    hashes.delete()

    builder = Builder(configuration)
    try:
        result = builder.generate()
    finally:
        builder.engine.dispose()

    if isinstance(result, Built):
        hashes.write()

    return result
