# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
"""Mount snapshot retrieval, the getmntinfo(3)/getfsstat(2) way.

psutil performs the kernel query on BSD and macOS and turns the `MNT_*`
bits of every `struct statfs` into a comma separated option list, so the
records arrive with their options already rendered.
"""

import logging
import sys
from dataclasses import dataclass
from typing import Callable, Generator, Protocol, Sequence

import psutil

from rofs.monitoring.mountlist.errors import SourceUnavailable
from rofs.monitoring.mountlist.types import RawMountEntry

logger = logging.getLogger(__name__)


class PartitionRecord(Protocol):
    """The fields of `psutil.disk_partitions` entries used here."""

    device: str
    mountpoint: str
    fstype: str
    opts: str


def psutil_snapshot() -> Sequence[PartitionRecord]:
    return psutil.disk_partitions(all=True)


@dataclass
class SnapshotMountSource:
    snapshot: Callable[[], Sequence[PartitionRecord]] = psutil_snapshot
    platform: str = sys.platform
    reliable_fs_type: bool = True

    def fetch_raw_entries(self) -> Generator[RawMountEntry, None, None]:
        logger.debug("Querying mount snapshot")
        try:
            records = self.snapshot()
        except OSError as e:
            raise SourceUnavailable(
                f"Could not query mounted file systems: {e.strerror}", e.errno
            ) from e
        except psutil.Error as e:
            raise SourceUnavailable(
                f"Could not query mounted file systems: {e}"
            ) from e

        for record in records:
            yield RawMountEntry(
                device_name=record.device,
                mount_dir=record.mountpoint,
                fs_type=record.fstype,
                options=record.opts,
            )
