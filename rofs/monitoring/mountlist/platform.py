# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
"""The mount source compiled in for the running platform.

The choice is made once, when this module is imported. There is no fallback
from one source to another at runtime.
"""

import logging
import sys
from typing import Callable, Generator, List, Tuple

from rofs.monitoring.mountlist.errors import SourceUnavailable
from rofs.monitoring.mountlist.types import MountSource, RawMountEntry

logger = logging.getLogger(__name__)

FnMountSourceFactory = Callable[[], MountSource]


def _mount_table_source() -> MountSource:
    from rofs.monitoring.mountlist.sources.mtab import MountTableSource

    return MountTableSource()


def _locked_mount_table_source() -> MountSource:
    from rofs.monitoring.mountlist.sources.mnttab import LockedMountTableSource

    return LockedMountTableSource()


def _snapshot_source() -> MountSource:
    from rofs.monitoring.mountlist.sources.snapshot import SnapshotMountSource

    return SnapshotMountSource()


def _vmount_source() -> MountSource:
    from rofs.monitoring.mountlist.sources.vmount import VmountSource

    return VmountSource()


class UnsupportedPlatformSource:
    reliable_fs_type = False

    def __init__(self, platform: str) -> None:
        self.platform = platform

    def fetch_raw_entries(self) -> Generator[RawMountEntry, None, None]:
        raise SourceUnavailable(
            f"Reading mounted file systems is not supported on {self.platform}"
        )


# sys.platform prefix -> factory; the first matching prefix wins.
PLATFORM_SOURCES: List[Tuple[str, FnMountSourceFactory]] = [
    ("linux", _mount_table_source),
    ("sunos", _locked_mount_table_source),
    ("aix", _vmount_source),
    ("darwin", _snapshot_source),
    ("freebsd", _snapshot_source),
    ("openbsd", _snapshot_source),
    ("netbsd", _snapshot_source),
]


def select_source_factory(platform: str) -> FnMountSourceFactory:
    for prefix, factory in PLATFORM_SOURCES:
        if platform.startswith(prefix):
            logger.debug(f"Using {factory.__name__} for platform {platform}")
            return factory
    logger.debug(f"No mount source for platform {platform}")
    return lambda: UnsupportedPlatformSource(platform)


PLATFORM_MOUNT_SOURCE: FnMountSourceFactory = select_source_factory(sys.platform)
