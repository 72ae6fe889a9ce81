from __future__ import annotations

from collections.abc import Generator
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from fixture_builder import database as db
from tests.models import Base


@pytest.fixture(name="database")
def fixture_database(tmp_path: Path) -> str:
    url = f"sqlite:///{tmp_path}/fixtures.db"
    engine = create_engine(url)
    Base.metadata.create_all(engine)
    engine.dispose()
    return url


@pytest.fixture(name="fixtures_path")
def fixture_fixtures_path(tmp_path: Path) -> Path:
    return tmp_path / "fixtures"


@pytest.fixture(name="session")
def fixture_session(database: str) -> Generator[Session, None, None]:
    engine = db.get_engine(database)
    with Session(engine) as session:
        yield session
    engine.dispose()
