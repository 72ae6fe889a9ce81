# ruff: noqa: T201

from __future__ import annotations

from collections.abc import Sequence


def say(*messages: str) -> None:
    for message in messages:
        print(f"=> {message}")


def to_sentence(words: Sequence[str]) -> str:
    if len(words) <= 1:
        return "".join(words)
    return f"{', '.join(words[:-1])} and {words[-1]}"
