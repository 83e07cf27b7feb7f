# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
"""Builds the list of mounted file systems from the platform mount source."""

import logging
from contextlib import closing
from typing import Generator, List, Optional

from rofs.monitoring.mountlist.classify import (
    DEFAULT_CLASSIFICATION,
    FsClassification,
)
from rofs.monitoring.mountlist.errors import MountListError, SourceFailed
from rofs.monitoring.mountlist.platform import PLATFORM_MOUNT_SOURCE
from rofs.monitoring.mountlist.types import (
    MountEntry,
    MountList,
    MountSource,
    RawMountEntry,
)

logger = logging.getLogger(__name__)


class MountListBuilder:
    """Append-only collection of entries, finalized once into a `MountList`."""

    def __init__(self) -> None:
        self._entries: List[MountEntry] = []
        self._built = False

    def __len__(self) -> int:
        return len(self._entries)

    def append(self, entry: MountEntry) -> None:
        if self._built:
            raise RuntimeError("MountListBuilder is already finalized")
        self._entries.append(entry)

    def build(self) -> MountList:
        self._built = True
        return tuple(self._entries)


def read_file_system_list(
    need_fs_type: bool,
    source: Optional[MountSource] = None,
    classification: FsClassification = DEFAULT_CLASSIFICATION,
) -> MountList:
    """Return the currently mounted file systems, in the order the OS reports them.

    If `need_fs_type` is true, the caller relies on `fs_type`; sources that
    cannot guarantee it still fill it in as well as they can.

    Raises a `MountListError` if the table could not be read. In that case
    the source has been released and no entry is returned.
    """
    if source is None:
        source = PLATFORM_MOUNT_SOURCE()
    logger.debug(f"Reading mounted file systems from {type(source).__name__}")
    if need_fs_type and not source.reliable_fs_type:
        logger.warning(
            f"{type(source).__name__} cannot guarantee file system types, "
            "type based filtering may be incomplete"
        )

    builder = MountListBuilder()
    try:
        raw_entries: Generator[RawMountEntry, None, None] = source.fetch_raw_entries()
        with closing(raw_entries):
            for raw in raw_entries:
                builder.append(classification.classify(raw, source.platform))
    except MountListError as e:
        logger.error(
            f"Could not read mounted file systems ({e.kind}): {e}; "
            f"discarding {len(builder)} entries read so far"
        )
        raise
    except OSError as e:
        logger.error(
            f"Could not read mounted file systems (os error): {e}; "
            f"discarding {len(builder)} entries read so far"
        )
        raise SourceFailed(f"Error while reading mounts: {e.strerror}", e.errno) from e

    mount_list = builder.build()
    logger.info(f"Read {len(mount_list)} mounted file systems")
    return mount_list
