# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
"""SVR4 style /etc/mnttab reading, serialized through an advisory lock file."""

import errno
import fcntl
import logging
import os
import sys
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Generator, Iterator, Optional

from rofs.monitoring.mountlist.errors import (
    LockAcquisitionFailed,
    SourceFailed,
    SourceUnavailable,
)
from rofs.monitoring.mountlist.sources.mtab import unescape_field
from rofs.monitoring.mountlist.types import RawMountEntry

logger = logging.getLogger(__name__)

MNTTAB = "/etc/mnttab"
MNTTAB_LOCK = "/etc/.mnttab.lock"
# Number of interrupted lock attempts tolerated before giving up.
LOCK_RETRY_LIMIT = 8


@contextmanager
def mnttab_lock(path: str = MNTTAB_LOCK) -> Iterator[Optional[int]]:
    """Hold a shared lock on `path` for the duration of the block.

    Yields None without locking when the lock file does not exist.
    """
    fd: Optional[int] = None
    try:
        fd = os.open(path, os.O_RDONLY)
    except OSError as e:
        if e.errno != errno.ENOENT:
            raise LockAcquisitionFailed(
                f"Could not open lock file {path}: {e.strerror}", e.errno
            ) from e

    if fd is None:
        logger.debug(f"Lock file {path} does not exist, reading unlocked")
        yield None
        return

    try:
        # CPython already retries lockf on EINTR (PEP 475) unless a signal
        # handler raises, so this bound is rarely if ever reached.
        for attempt in range(1, LOCK_RETRY_LIMIT + 1):
            try:
                fcntl.lockf(fd, fcntl.LOCK_SH)
                break
            except InterruptedError:
                logger.debug(f"Interrupted while locking {path} (attempt {attempt})")
            except OSError as e:
                raise LockAcquisitionFailed(
                    f"Could not lock {path}: {e.strerror}", e.errno
                ) from e
        else:
            raise LockAcquisitionFailed(
                f"Gave up locking {path} after {LOCK_RETRY_LIMIT} interruptions",
                errno.EINTR,
            )
        yield fd
    finally:
        os.close(fd)


def parse_mnttab_line(line: str) -> Optional[RawMountEntry]:
    """Parse a tab separated `special mountp fstype mntopts time` line."""
    stripped = line.rstrip("\n")
    if not stripped.strip():
        return None

    fields = stripped.split("\t")
    fields += [""] * (4 - len(fields))
    device_name, mount_dir, fs_type, options = map(unescape_field, fields[:4])
    return RawMountEntry(
        device_name=device_name,
        mount_dir=mount_dir,
        fs_type=fs_type,
        options=options,
    )


@dataclass
class LockedMountTableSource:
    path: str = MNTTAB
    lock_path: str = MNTTAB_LOCK
    platform: str = sys.platform
    reliable_fs_type: bool = True

    def fetch_raw_entries(self) -> Generator[RawMountEntry, None, None]:
        with mnttab_lock(self.lock_path):
            try:
                f = open(self.path, encoding="utf-8", errors="surrogateescape")
            except OSError as e:
                raise SourceUnavailable(
                    f"Could not open mount table {self.path}: {e.strerror}", e.errno
                ) from e

            with f:
                try:
                    for line in f:
                        raw = parse_mnttab_line(line)
                        if raw is not None:
                            yield raw
                except OSError as e:
                    raise SourceFailed(
                        f"Error while reading mount table {self.path}: {e.strerror}",
                        e.errno,
                    ) from e
