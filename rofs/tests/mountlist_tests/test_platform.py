# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
import sys

import pytest

from rofs.monitoring.mountlist.errors import SourceUnavailable
from rofs.monitoring.mountlist.platform import (
    PLATFORM_MOUNT_SOURCE,
    select_source_factory,
    UnsupportedPlatformSource,
)
from rofs.monitoring.mountlist.sources.mnttab import LockedMountTableSource
from rofs.monitoring.mountlist.sources.mtab import MountTableSource
from rofs.monitoring.mountlist.sources.snapshot import SnapshotMountSource
from rofs.monitoring.mountlist.sources.vmount import VmountSource


@pytest.mark.parametrize(
    "platform, source_type",
    [
        ("linux", MountTableSource),
        ("sunos5", LockedMountTableSource),
        ("aix7", VmountSource),
        ("darwin", SnapshotMountSource),
        ("freebsd14", SnapshotMountSource),
        ("openbsd7", SnapshotMountSource),
        ("netbsd10", SnapshotMountSource),
    ],
)
def test_select_source_factory(platform: str, source_type: type) -> None:
    assert isinstance(select_source_factory(platform)(), source_type)


def test_unknown_platform_fails_on_read() -> None:
    source = select_source_factory("plan9")()

    assert isinstance(source, UnsupportedPlatformSource)
    with pytest.raises(SourceUnavailable):
        source.fetch_raw_entries()


@pytest.mark.skipif(not sys.platform.startswith("linux"), reason="linux only")
def test_running_platform_uses_mount_table() -> None:
    source = PLATFORM_MOUNT_SOURCE()

    assert isinstance(source, MountTableSource)
    assert source.platform == sys.platform
