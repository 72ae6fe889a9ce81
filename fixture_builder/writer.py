from __future__ import annotations

import base64
import datetime
import enum
import json
from collections.abc import Iterable, Mapping
from contextlib import suppress
from decimal import Decimal
from pathlib import Path
from uuid import UUID

DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"
BINARY_KEY = "base64"


class FixtureEncoder(json.JSONEncoder):
    def default(self, o: object) -> object:
        if isinstance(o, datetime.datetime):
            if o.tzinfo is not None:
                o = o.astimezone(datetime.timezone.utc)
            return o.strftime(DATETIME_FORMAT)
        if isinstance(o, (datetime.date, datetime.time)):
            return o.isoformat()
        if isinstance(o, Decimal):
            return float(o)
        if isinstance(o, UUID):
            return str(o)
        if isinstance(o, enum.Enum):
            return o.name
        if isinstance(o, (bytes, bytearray, memoryview)):
            return {BINARY_KEY: base64.b64encode(bytes(o)).decode("ascii")}
        return super().default(o)


def decode_binary(value: object) -> bytes | None:
    """Return the bytes of a value encoded by `FixtureEncoder`, or None for any other value."""
    if not isinstance(value, Mapping) or list(value) != [BINARY_KEY]:
        return None
    return base64.b64decode(value[BINARY_KEY])


def dumps(fixture_data: Mapping[str, Mapping[str, object]]) -> str:
    return json.dumps(fixture_data, indent=2, ensure_ascii=False, cls=FixtureEncoder) + "\n"


def write_fixture_file(fixture_data: Mapping[str, Mapping[str, object]], path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dumps(fixture_data), encoding="utf-8")


def read_fixture_file(path: Path) -> dict[str, dict[str, object]]:
    return json.loads(path.read_text(encoding="utf-8"))


def delete_fixture_files(paths: Iterable[Path]) -> None:
    for path in paths:
        with suppress(OSError):
            path.unlink()
