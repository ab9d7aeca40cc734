from pathlib import Path

import chunkscope
from chunkscope.version import get_version


def test_version_matches_packaged_file() -> None:
    packaged = Path(chunkscope.__file__).with_name("VERSION").read_text(encoding="utf-8").strip()

    assert get_version() == packaged
    assert chunkscope.__version__ == packaged
