from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Callable, Mapping, Optional

import pytest

from .helpers import BIRDS_MANIFEST, BIRDS_TREE, FixedClock


@pytest.fixture
def write_tree(tmp_path: Path) -> Callable[..., Path]:
    def _write(files: Mapping[str, str], root: Optional[Path] = None) -> Path:
        base = root or tmp_path / "app"
        base.mkdir(parents=True, exist_ok=True)
        for relative, content in files.items():
            path = base / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        return base

    return _write


@pytest.fixture
def birds_app(write_tree: Callable[..., Path]) -> Path:
    return write_tree({**BIRDS_TREE, "HIPPOFACTS": BIRDS_MANIFEST})


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2021, 6, 15, 9, 30, 5, 123456))
