# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
from dataclasses import dataclass
from typing import Generator, Optional, Protocol, Tuple


@dataclass(frozen=True)
class MountEntry:
    """One file system attached at a directory, as reported by the OS."""

    device_name: str
    mount_dir: str
    fs_type: str
    options: str
    is_dummy: bool
    is_remote: bool
    is_readonly: bool
    # None means the device number is unknown
    device_id: Optional[int] = None


@dataclass
class RawMountEntry:
    """Unprocessed fields of a mount as produced by a `MountSource`.

    The optional flags are left as None when the source has no better
    knowledge than the classification helpers. When the source does set
    them, they take precedence over derived values.
    """

    device_name: str
    mount_dir: str
    fs_type: str = ""
    options: str = ""
    dummy: Optional[bool] = None
    remote: Optional[bool] = None
    readonly: Optional[bool] = None
    device_id: Optional[int] = None
    device_id_authoritative: bool = False


MountList = Tuple[MountEntry, ...]


class MountSource(Protocol):
    @property
    def platform(self) -> str: ...

    @property
    def reliable_fs_type(self) -> bool: ...

    def fetch_raw_entries(self) -> Generator[RawMountEntry, None, None]: ...
