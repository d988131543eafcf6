"""Shared test fixtures for specreader.

Provides the fixture directory, a helper for writing small document sets
into ``tmp_path``, and a counting loader for asserting how often documents are
read.
"""

from __future__ import annotations

import textwrap
from collections import Counter
from pathlib import Path
from typing import Callable

import pytest

from specreader.output import reset_output
from specreader.reader.documents import read_file_bytes


FIXTURES_DIR = Path(__file__).parent / "fixtures"


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The manager's Rich consoles hold on to the sys.stdout/sys.stderr seen at
    creation time, which CliRunner swaps out per invocation.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Document fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES_DIR


@pytest.fixture
def write_docs(tmp_path: Path) -> Callable[..., Path]:
    """Write a ``{relative name: YAML text}`` mapping under tmp_path.

    Returns the directory the documents were written to. Text is dedented so
    tests can use indented triple-quoted strings.
    """

    def _write(docs: dict[str, str]) -> Path:
        for name, text in docs.items():
            path = tmp_path / name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(textwrap.dedent(text), encoding="utf-8")
        return tmp_path

    return _write


class CountingLoader:
    """Filesystem loader that records how many times each file is read."""

    def __init__(self) -> None:
        self.calls: Counter[str] = Counter()

    def __call__(self, file: str) -> bytes:
        self.calls[file] += 1
        return read_file_bytes(file)


@pytest.fixture
def counting_loader() -> CountingLoader:
    return CountingLoader()
