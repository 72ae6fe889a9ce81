from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Any

from flask import Config
from sqlalchemy.orm import DeclarativeBase, Session, registry
from werkzeug.utils import import_string

from fixture_builder.values import CREATED_AT

ENVIRONMENT_VARIABLE = "FIXTURE_BUILDER_CONFIG"

NamingFunction = Callable[[Mapping[str, object], str], str]
Factory = Callable[[Session], Mapping[str, object] | None]


@dataclass
class Configuration:
    database: str
    factory: Factory
    base: type[DeclarativeBase] | registry | None = None
    fixtures_path: Path = Path("tests/fixtures")
    tables: list[str] | None = None
    skip_tables: list[str] = field(default_factory=lambda: ["alembic_version"])
    model_name_functions: dict[object, NamingFunction] = field(default_factory=dict)
    generate_ids: bool = True
    generate_ids_excluded_column_names: set[str] = field(default_factory=set)
    write_empty_files: bool = False
    legacy_fixtures: list[Path] = field(default_factory=list)
    after_build: Callable[[], object] | None = None
    record_name_fields: list[str] = field(default_factory=list)
    recent_window: timedelta = timedelta(days=1)
    files_to_check: list[str] = field(default_factory=list)
    use_sha1_digests: bool = False
    sqlite_foreign_key_support: bool = True

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> Configuration:
        return cls(
            database=config["DATABASE"],
            factory=_resolve(config["FACTORY"]),
            base=_resolve(config.get("BASE")),
            fixtures_path=Path(config["FIXTURES_PATH"]),
            tables=config.get("TABLES"),
            skip_tables=list(config["SKIP_TABLES"]),
            model_name_functions={
                _resolve_model(model): _resolve(function)
                for model, function in config.get("NAME_MODEL_WITH", {}).items()
            },
            generate_ids=config["GENERATE_IDS"],
            generate_ids_excluded_column_names=set(config["GENERATE_IDS_EXCLUDED_COLUMN_NAMES"]),
            write_empty_files=config["WRITE_EMPTY_FILES"],
            legacy_fixtures=[Path(f) for f in config["LEGACY_FIXTURES"]],
            after_build=_resolve(config.get("AFTER_BUILD")),
            record_name_fields=list(config["RECORD_NAME_FIELDS"]),
            recent_window=config["RECENT_WINDOW"],
            files_to_check=list(config["FILES_TO_CHECK"]),
            use_sha1_digests=config["USE_SHA1_DIGESTS"],
            sqlite_foreign_key_support=config["SQLITE_FOREIGN_KEY_SUPPORT"],
        )

    @property
    def order_by(self) -> str:
        return CREATED_AT if self.generate_ids else "id"

    def fixture_file(self, table_name: str) -> Path:
        return self.fixtures_path / f"{table_name}.json"

    def naming_function(self, table_name: str) -> NamingFunction | None:
        for model, function in self.model_name_functions.items():
            if model == table_name or _table_name(model) == table_name:
                return function
        return None


def _resolve(value: object) -> Any:
    """Import objects that are given as "module:attribute" strings in a config file."""
    if isinstance(value, str):
        return import_string(value)
    return value


def _resolve_model(model: object) -> object:
    if isinstance(model, str) and ":" not in model:
        return model
    return _resolve(model)


def _table_name(model: object) -> str | None:
    table = getattr(model, "__table__", None)
    return getattr(table, "name", None)


def check_config(config: Mapping[str, object]) -> None:
    for key in ["DATABASE", "FACTORY"]:
        if key not in config:
            raise RuntimeError(f"'{key}' is not set in config")


def check_config_file(environ: Mapping[str, str]) -> Path:
    if ENVIRONMENT_VARIABLE not in environ:
        raise RuntimeError(f"environment variable '{ENVIRONMENT_VARIABLE}' is not set")

    config_file = Path(environ[ENVIRONMENT_VARIABLE])

    if not config_file.exists():
        raise RuntimeError(f"config file '{config_file}' not found")

    return config_file


def load_config(config_file: Path | None, environ: Mapping[str, str]) -> Configuration:
    if config_file is None:
        config_file = check_config_file(environ)
    elif not config_file.exists():
        raise RuntimeError(f"config file '{config_file}' not found")

    config = Config(str(Path.cwd()))
    config.from_object("fixture_builder.default_config")
    config.from_pyfile(str(config_file.resolve()))
    check_config(config)

    return Configuration.from_mapping(config)


def create_config_file(config_directory: Path, database: str) -> Path:
    config = config_directory / "fixture_builder_config.py"
    config.write_text(
        f"DATABASE = {database!r}\n"
        "FACTORY = 'tests.fixture_factory:build'\n"
        "BASE = 'app.models:Base'\n"
        "FIXTURES_PATH = 'tests/fixtures'\n"
        "FILES_TO_CHECK = ['tests/fixture_factory.py']\n",
        encoding="utf-8",
    )
    return config
