# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
"""Pure helpers deriving mount attributes from device name, type and options."""

import re
import sys
from dataclasses import dataclass, replace
from typing import Collection, FrozenSet, Iterable, Optional

from rofs.monitoring.mountlist.types import MountEntry, RawMountEntry

# Virtual file systems with no persistent backing store.
PSEUDO_FS_TYPES: FrozenSet[str] = frozenset(
    {
        "autofs",
        "binfmt_misc",
        "devpts",
        "fusectl",
        "none",
        "proc",
        "subfs",
        # NetBSD 3.0
        "kernfs",
        # Irix 6.5
        "ignore",
    }
)

# Share types whose device name is a '//server/share' UNC path.
NETWORK_SHARE_FS_TYPES: FrozenSet[str] = frozenset({"smbfs", "cifs"})

# Linux lets each file system define its own meaning for "dev=".
UNTRUSTED_DEV_OPTION_PLATFORMS: FrozenSet[str] = frozenset({"linux"})

IGNORE_OPTION = "ignore"
READONLY_OPTION = "ro"
DEV_OPTION_PATTERN = ",dev="
DEV_T_MAX = 2**64 - 1

_HEX_VALUE = re.compile(r"(?:0[xX])?([0-9a-fA-F]+)(?:,|\Z)")


def _option_tokens(options: str) -> Iterable[str]:
    return (token for token in options.split(",") if token)


def is_pseudo(fs_type: str, pseudo_fs_types: Collection[str] = PSEUDO_FS_TYPES) -> bool:
    return fs_type in pseudo_fs_types


def has_ignore_option(options: str) -> bool:
    return any(token == IGNORE_OPTION for token in _option_tokens(options))


def is_dummy(
    fs_type: str,
    options: str,
    pseudo_fs_types: Collection[str] = PSEUDO_FS_TYPES,
) -> bool:
    return is_pseudo(fs_type, pseudo_fs_types) or has_ignore_option(options)


def is_remote(
    device_name: str,
    fs_type: str,
    network_fs_types: Collection[str] = NETWORK_SHARE_FS_TYPES,
) -> bool:
    """A file system is remote if its device name contains a ':', or if it
    is a network share whose device name starts with '//'.

    >>> is_remote("nfs-server:/export", "nfs")
    True
    >>> is_remote("//server/share", "cifs")
    True
    >>> is_remote("//server/share", "ext4")
    False
    """
    return ":" in device_name or (
        device_name.startswith("//") and fs_type in network_fs_types
    )


def is_readonly(options: str) -> bool:
    """Check for the "ro" token in a comma separated option list.

    >>> is_readonly("rw,ro")
    True
    >>> is_readonly("rom")
    False
    """
    return any(token == READONLY_OPTION for token in _option_tokens(options))


def _platform_family(platform: str) -> str:
    return re.sub(r"\d+$", "", platform)


def extract_device_id(
    options: str,
    platform: str = sys.platform,
    untrusted_platforms: Collection[str] = UNTRUSTED_DEV_OPTION_PLATFORMS,
) -> Optional[int]:
    """Return the device number from a ",dev=<hex>" option, if possible.

    Only the first ",dev=" fragment is considered. The hex value has to run
    up to the next comma or the end of the string and fit in a dev_t.
    Returns None when the value is missing, invalid, or the platform does
    not give "dev=" a portable meaning.

    >>> hex(extract_device_id("rw,dev=1a2b,noatime", platform="sunos5"))
    '0x1a2b'
    >>> extract_device_id("rw,dev=zz", platform="sunos5") is None
    True
    """
    if _platform_family(platform) in untrusted_platforms:
        return None

    start = options.find(DEV_OPTION_PATTERN)
    if start < 0:
        return None

    m = _HEX_VALUE.match(options, start + len(DEV_OPTION_PATTERN))
    if m is None:
        return None

    dev = int(m.group(1), 16)
    if dev > DEV_T_MAX:
        return None
    return dev


@dataclass(frozen=True)
class FsClassification:
    """The name tables used to classify mounts on one platform."""

    pseudo_fs_types: FrozenSet[str] = PSEUDO_FS_TYPES
    network_fs_types: FrozenSet[str] = NETWORK_SHARE_FS_TYPES
    untrusted_dev_option_platforms: FrozenSet[str] = UNTRUSTED_DEV_OPTION_PLATFORMS

    def extended(
        self,
        pseudo_fs_types: Iterable[str] = (),
        network_fs_types: Iterable[str] = (),
    ) -> "FsClassification":
        return replace(
            self,
            pseudo_fs_types=self.pseudo_fs_types | frozenset(pseudo_fs_types),
            network_fs_types=self.network_fs_types | frozenset(network_fs_types),
        )

    def classify(self, raw: RawMountEntry, platform: str = sys.platform) -> MountEntry:
        """Build a `MountEntry`, preferring the values the source supplied."""
        options = raw.options or ""
        fs_type = raw.fs_type or ""

        dummy = raw.dummy
        if dummy is None:
            dummy = is_dummy(fs_type, options, self.pseudo_fs_types)
        remote = raw.remote
        if remote is None:
            remote = is_remote(raw.device_name, fs_type, self.network_fs_types)
        readonly = raw.readonly
        if readonly is None:
            readonly = is_readonly(options)
        if raw.device_id_authoritative:
            device_id = raw.device_id
        else:
            device_id = extract_device_id(
                options, platform, self.untrusted_dev_option_platforms
            )

        return MountEntry(
            device_name=raw.device_name,
            mount_dir=raw.mount_dir,
            fs_type=fs_type,
            options=options,
            is_dummy=dummy,
            is_remote=remote,
            is_readonly=readonly,
            device_id=device_id,
        )


DEFAULT_CLASSIFICATION = FsClassification()
