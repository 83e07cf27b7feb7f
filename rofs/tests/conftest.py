# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
from pathlib import Path

import pytest

THREE_LINE_TABLE = """\
/dev/sda1 / ext4 rw,relatime 0 0
tmpfs /tmp tmpfs rw 0 0
/dev/sdb1 /data ext4 ro,relatime,dev=1f 0 0
"""


@pytest.fixture
def mount_table(tmp_path: Path) -> Path:
    """A mount table file with a writable root, tmpfs and a read-only /data."""
    path = tmp_path / "mtab"
    path.write_text(THREE_LINE_TABLE)
    return path
