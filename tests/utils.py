from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from pathlib import Path

from sqlalchemy.orm import Session

from fixture_builder.builder import Builder, BuildResult
from fixture_builder.config import Configuration
from tests.models import Base


def configuration(
    database: str,
    fixtures_path: Path,
    factory: Callable[[Session], Mapping[str, object] | None],
    **kwargs: object,
) -> Configuration:
    return Configuration(
        database=database,
        factory=factory,
        base=Base,
        fixtures_path=fixtures_path,
        **kwargs,  # type: ignore[arg-type]
    )


def generate(config: Configuration) -> BuildResult:
    builder = Builder(config)
    try:
        return builder.generate()
    finally:
        builder.engine.dispose()


def read_fixture(fixtures_path: Path, table_name: str) -> dict[str, dict[str, object]]:
    return json.loads((fixtures_path / f"{table_name}.json").read_text(encoding="utf-8"))
