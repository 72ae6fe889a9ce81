from __future__ import annotations

import glob
import hashlib
import json
from collections.abc import Iterable
from pathlib import Path

HASHES_FILE = "fixture_builder.json"


class FileHashes:
    """Detect changes of the files on which the generated fixtures depend."""

    def __init__(
        self, files: Iterable[str], fixtures_path: Path, use_sha1_digests: bool = False
    ) -> None:
        self.files = list(files)
        self.hashes_file = fixtures_path / HASHES_FILE
        self.use_sha1_digests = use_sha1_digests

    def paths(self) -> list[str]:
        result = []
        for pattern in self.files:
            if glob.has_magic(pattern):
                result.extend(sorted(glob.glob(pattern, recursive=True)))
            else:
                result.append(pattern)
        return result

    def digest(self, path: str) -> str:
        content = Path(path).read_bytes()
        if self.use_sha1_digests:
            return hashlib.sha1(content).hexdigest()
        return hashlib.md5(content).hexdigest()

    def file_hashes(self) -> dict[str, str]:
        return {path: self.digest(path) for path in self.paths()}

    def read_existing_hashes(self) -> dict[str, str]:
        if not self.hashes_file.exists():
            return {}
        return json.loads(self.hashes_file.read_text(encoding="utf-8"))

    def rebuild_needed(self) -> bool:
        return not self.hashes_file.exists() or self.file_hashes() != self.read_existing_hashes()

    def write(self) -> None:
        self.hashes_file.parent.mkdir(parents=True, exist_ok=True)
        self.hashes_file.write_text(
            json.dumps(self.file_hashes(), indent=2, sort_keys=True) + "\n", encoding="utf-8"
        )

    def delete(self) -> None:
        self.hashes_file.unlink(missing_ok=True)
