from __future__ import annotations

import base64
import datetime
import json
import pickle
from pathlib import Path

import pytest
from jinja2 import UndefinedError
from sqlalchemy import select
from sqlalchemy.orm import Session

from fixture_builder import loader
from fixture_builder.config import Configuration
from fixture_builder.namer import Namer
from fixture_builder.tables import model_classes
from tests.models import Base, Familiar, MagicalCreature, Spell, Vault, Wizard, runes


def write_fixture(path: Path, data: dict[str, dict[str, object]]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_identify() -> None:
    assert loader.identify("merlin") == loader.identify("merlin")
    assert loader.identify("merlin") != loader.identify("morgana")
    assert 0 <= loader.identify("merlin") < loader.MAX_ID


def test_render_value() -> None:
    environment = loader.create_environment()
    context = model_classes(Base)

    assert loader.render_value(
        '{{ Vault.generate_secret_ciphertext("open") }}', environment, context
    ) == "nepo"
    assert loader.render_value("plain", environment, context) == "plain"
    assert loader.render_value(1, environment, context) == 1

    with pytest.raises(UndefinedError):
        loader.render_value('{{ Unknown.generate_x("a") }}', environment, context)


def test_resolve_labels() -> None:
    row: dict[str, object] = {"name": "Fireball", "caster": "merlin (Wizard)"}
    loader.resolve_labels("fireball", row, Spell.__table__)
    assert row == {
        "name": "Fireball",
        "id": loader.identify("fireball"),
        "caster_id": loader.identify("merlin"),
        "caster_type": "Wizard",
    }

    row = {"id": 3, "name": "Bubo", "wizard": "morgana"}
    loader.resolve_labels("bubo", row, Familiar.__table__)
    assert row == {"id": 3, "name": "Bubo", "wizard_id": loader.identify("morgana")}


def test_column_value() -> None:
    assert loader.column_value(Wizard.__table__.c.created_at, "2002-03-12 08:30:00") == (
        datetime.datetime(2002, 3, 12, 8, 30)
    )
    assert loader.column_value(Wizard.__table__.c.name, "2002-03-12") == "2002-03-12"
    assert loader.column_value(Wizard.__table__.c.created_at, None) is None


def test_column_value_binary() -> None:
    portrait = MagicalCreature.__table__.c.portrait
    contents = Vault.__table__.c.contents
    encoded = {"base64": base64.b64encode(pickle.dumps({"gold": 3})).decode("ascii")}

    assert loader.column_value(portrait, {"base64": "AAE="}) == b"\x00\x01"
    assert loader.column_value(contents, encoded) == {"gold": 3}
    assert loader.column_value(contents, {"gold": 3}) == {"gold": 3}


def test_load_fixtures(session: Session, tmp_path: Path) -> None:
    write_fixture(
        tmp_path / "wizards.json",
        {"merlin": {"name": "Merlin", "created_at": "2002-03-12 08:30:00"}},
    )
    write_fixture(
        tmp_path / "familiars.json", {"archimedes": {"name": "Archimedes", "wizard": "merlin"}}
    )
    write_fixture(
        tmp_path / "vaults.json",
        {
            "vault": {
                "owner": "Merlin",
                "secret_ciphertext": '{{ Vault.generate_secret_ciphertext("open") }}',
            }
        },
    )
    write_fixture(tmp_path / "runes.json", {"fehu": {"id": 7, "glyph": "F", "wizard": "merlin"}})

    connection = session.connection()
    context = model_classes(Base)
    for table in ["wizards", "familiars", "vaults"]:
        loader.load_fixtures(connection, tmp_path / f"{table}.json", Base.metadata, context)
    table_name, fixtures = loader.load_fixtures(connection, tmp_path / "runes.json")

    merlin = session.get(Wizard, loader.identify("merlin"))
    assert merlin
    assert merlin.created_at == datetime.datetime(2002, 3, 12, 8, 30)
    assert [f.name for f in merlin.familiars] == ["Archimedes"]
    assert session.scalars(select(Vault)).one().secret == "open"
    assert table_name == "runes"
    assert fixtures == {"fehu": {"id": 7, "glyph": "F", "wizard_id": loader.identify("merlin")}}
    assert session.execute(select(runes.c.glyph)).scalar_one() == "F"


def test_load_legacy_fixtures(session: Session, tmp_path: Path) -> None:
    paths = [
        write_fixture(tmp_path / "wizards.json", {"merlin": {"id": 1, "name": "Merlin"}}),
        write_fixture(tmp_path / "familiars.json", {"bubo": {"name": "Bubo", "wizard_id": 1}}),
    ]
    namer = Namer(Configuration(database="sqlite://", factory=lambda session: None))

    loader.load_legacy_fixtures(session.connection(), paths, namer, Base.metadata)

    assert namer.lookup(1, "wizards") == "merlin"
    assert namer.lookup(loader.identify("bubo"), "familiars") == "bubo"
    assert session.scalars(select(Familiar.wizard_id)).one() == 1
