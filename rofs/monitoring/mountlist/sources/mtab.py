# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
"""Sequential reading of a mount table file in the getmntent(3) format."""

import logging
import os
import re
import sys
from dataclasses import dataclass, field
from typing import Generator, Optional

from rofs.monitoring.mountlist.errors import SourceFailed, SourceUnavailable
from rofs.monitoring.mountlist.types import RawMountEntry

logger = logging.getLogger(__name__)

DEFAULT_MOUNT_TABLE = "/etc/mtab"
MOUNT_TABLE_ENV = "ROFS_MOUNT_TABLE"

_OCTAL_ESCAPE = re.compile(r"\\([0-3][0-7]{2})")


def unescape_field(s: str) -> str:
    r"""Decode the octal escapes getmntent uses for blanks and backslashes.

    >>> unescape_field(r"/mnt/my\040disk")
    '/mnt/my disk'
    """
    return _OCTAL_ESCAPE.sub(lambda m: chr(int(m.group(1), 8)), s)


def parse_mount_table_line(line: str) -> Optional[RawMountEntry]:
    """Parse one line of the table, or return None for blanks and comments.

    Fields missing at the end of a line are reported as empty strings.
    """
    stripped = line.strip()
    if not stripped or stripped.startswith("#"):
        return None

    fields = stripped.split()
    fields += [""] * (4 - len(fields))
    device_name, mount_dir, fs_type, options = map(unescape_field, fields[:4])
    return RawMountEntry(
        device_name=device_name,
        mount_dir=mount_dir,
        fs_type=fs_type,
        options=options,
    )


def default_mount_table() -> str:
    return os.environ.get(MOUNT_TABLE_ENV) or DEFAULT_MOUNT_TABLE


@dataclass
class MountTableSource:
    path: str = field(default_factory=default_mount_table)
    platform: str = sys.platform
    reliable_fs_type: bool = True

    def fetch_raw_entries(self) -> Generator[RawMountEntry, None, None]:
        logger.debug(f"Reading mount table {self.path}")
        try:
            f = open(self.path, encoding="utf-8", errors="surrogateescape")
        except OSError as e:
            raise SourceUnavailable(
                f"Could not open mount table {self.path}: {e.strerror}", e.errno
            ) from e

        with f:
            try:
                for line in f:
                    raw = parse_mount_table_line(line)
                    if raw is not None:
                        yield raw
            except OSError as e:
                raise SourceFailed(
                    f"Error while reading mount table {self.path}: {e.strerror}",
                    e.errno,
                ) from e
