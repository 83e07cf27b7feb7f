# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
import errno
import os
from pathlib import Path
from typing import List
from unittest.mock import patch

import pytest

from rofs.monitoring.mountlist.errors import (
    LockAcquisitionFailed,
    SourceUnavailable,
)
from rofs.monitoring.mountlist.sources.mnttab import (
    LOCK_RETRY_LIMIT,
    LockedMountTableSource,
    mnttab_lock,
    parse_mnttab_line,
)
from rofs.monitoring.mountlist.types import RawMountEntry

MNTTAB_CONTENTS = (
    "/dev/dsk/c0t0d0s0\t/\tufs\trw,intr,largefiles,logging,dev=2200000\t1700000000\n"
    "swap\t/tmp\ttmpfs\txattr,dev=4a80001\t1700000000\n"
    "fileserver:/export/home\t/home\tnfs\tro,dev=4ac0001\t1700000000\n"
)


@pytest.fixture
def mnttab(tmp_path: Path) -> Path:
    path = tmp_path / "mnttab"
    path.write_text(MNTTAB_CONTENTS)
    return path


@pytest.fixture
def lock_file(tmp_path: Path) -> Path:
    path = tmp_path / ".mnttab.lock"
    path.touch()
    return path


def test_parse_mnttab_line() -> None:
    assert parse_mnttab_line(
        "fileserver:/export/home\t/home\tnfs\tro,dev=4ac0001\t1700000000\n"
    ) == RawMountEntry("fileserver:/export/home", "/home", "nfs", "ro,dev=4ac0001")
    assert parse_mnttab_line("\n") is None


def test_reads_entries_under_lock(mnttab: Path, lock_file: Path) -> None:
    source = LockedMountTableSource(str(mnttab), str(lock_file))

    with patch("fcntl.lockf") as lockf:
        entries = list(source.fetch_raw_entries())

    assert lockf.call_count == 1
    assert [e.mount_dir for e in entries] == ["/", "/tmp", "/home"]
    assert entries[2].device_name == "fileserver:/export/home"


def test_missing_lock_file_reads_unlocked(mnttab: Path, tmp_path: Path) -> None:
    source = LockedMountTableSource(str(mnttab), str(tmp_path / "no_lock"))

    with patch("fcntl.lockf") as lockf:
        entries = list(source.fetch_raw_entries())

    lockf.assert_not_called()
    assert len(entries) == 3


def test_unopenable_lock_file_fails(mnttab: Path, tmp_path: Path) -> None:
    # a lock "file" inside a regular file cannot be opened: ENOTDIR, not ENOENT
    source = LockedMountTableSource(str(mnttab), str(mnttab / "lock"))

    with pytest.raises(LockAcquisitionFailed) as exc_info:
        list(source.fetch_raw_entries())

    assert exc_info.value.errno == errno.ENOTDIR


def test_interrupted_lock_is_retried(lock_file: Path) -> None:
    with patch("fcntl.lockf", side_effect=[InterruptedError, InterruptedError, None]):
        with mnttab_lock(str(lock_file)) as fd:
            assert fd is not None


def test_interrupted_lock_gives_up(lock_file: Path) -> None:
    closed: List[int] = []
    real_close = os.close

    def close(fd: int) -> None:
        closed.append(fd)
        real_close(fd)

    with (
        patch("fcntl.lockf", side_effect=InterruptedError) as lockf,
        patch("os.close", side_effect=close),
    ):
        with pytest.raises(LockAcquisitionFailed) as exc_info:
            with mnttab_lock(str(lock_file)):
                pass

    assert lockf.call_count == LOCK_RETRY_LIMIT
    assert exc_info.value.errno == errno.EINTR
    assert len(closed) == 1


def test_lock_error_fails(mnttab: Path, lock_file: Path) -> None:
    source = LockedMountTableSource(str(mnttab), str(lock_file))

    with patch("fcntl.lockf", side_effect=OSError(errno.ENOLCK, "No locks available")):
        with pytest.raises(LockAcquisitionFailed) as exc_info:
            list(source.fetch_raw_entries())

    assert exc_info.value.errno == errno.ENOLCK


def test_missing_table_is_unavailable(tmp_path: Path, lock_file: Path) -> None:
    source = LockedMountTableSource(str(tmp_path / "no_mnttab"), str(lock_file))

    with patch("fcntl.lockf"):
        with pytest.raises(SourceUnavailable):
            list(source.fetch_raw_entries())
