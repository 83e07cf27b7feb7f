# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
"""AIX mount information, read with mntctl(MCTL_QUERY) as `struct vmount` records.

The kernel fills one buffer with variable length records. Each record starts
with a fixed header, followed by an array of (offset, size) slots pointing at
NUL terminated strings inside the record:

    uint  vmt_revision
    uint  vmt_length        total record length, the stride to the next one
    int   vmt_fsid[2]
    int   vmt_vfsnumber
    uint  vmt_time
    uint  vmt_timepad
    int   vmt_flags
    int   vmt_gfstype
    short vmt_data[6][2]    VMT_OBJECT, VMT_STUB, VMT_HOST, VMT_HOSTNAME,
                            VMT_INFO, VMT_ARGS
"""

import ctypes
import logging
import struct
import sys
from dataclasses import dataclass
from typing import Callable, Generator, Iterator, Mapping, Tuple

from rofs.monitoring.mountlist.errors import (
    MalformedRecord,
    SourceFailed,
    SourceUnavailable,
)
from rofs.monitoring.mountlist.types import RawMountEntry

logger = logging.getLogger(__name__)

MCTL_QUERY = 2

VMT_OBJECT = 0
VMT_STUB = 1
VMT_HOST = 2
VMT_HOSTNAME = 3
VMT_INFO = 4
VMT_ARGS = 5
VMT_LASTINDEX = VMT_ARGS

MNT_READONLY = 0x0001
MNT_REMOTE = 0x0008

VMOUNT_HEADER = struct.Struct("=IIiiiIIii" + "hh" * (VMT_LASTINDEX + 1))

# vmt_gfstype values from <sys/vmount.h>, standing in for getvfsbytype(3).
GFS_TYPE_NAMES: Mapping[int, str] = {
    0: "jfs2",
    1: "namefs",
    2: "nfs",
    3: "jfs",
    5: "cdrfs",
    6: "procfs",
    16: "sfs",
    17: "cachefs",
    18: "nfs3",
    19: "autofs",
    20: "poolfs",
    32: "vxfs",
    33: "vxodm",
    34: "udfs",
    35: "nfs4",
    36: "rfs4",
    37: "cifs",
    38: "pmemfs",
    39: "ahafs",
    41: "stnfs",
    42: "asmfs",
}

# (command, size, buffer) -> int, with the semantics of mntctl(2).
FnMntctl = Callable[[int, int, ctypes.Array], int]


def _record_string(
    buf: bytes, record_start: int, record_end: int, slot: Tuple[int, int]
) -> str:
    off, size = slot
    start = record_start + off
    end = start + size
    if off < 0 or size < 0 or end > record_end:
        raise MalformedRecord(
            f"vmount string slot at offset {off} (size {size}) lies outside the record at {record_start}"
        )
    raw = buf[start:end].split(b"\0", 1)[0]
    return raw.decode("utf-8", errors="surrogateescape")


def parse_vmount_buffer(buf: bytes, count: int) -> Iterator[RawMountEntry]:
    """Walk `count` vmount records in `buf`.

    Raises MalformedRecord for any record whose stated length is shorter
    than its header or would carry the cursor past the end of the buffer.
    """
    cursor = 0
    for n in range(count):
        if cursor + VMOUNT_HEADER.size > len(buf):
            raise MalformedRecord(
                f"vmount record {n} header at offset {cursor} exceeds buffer of {len(buf)} bytes"
            )
        fields = VMOUNT_HEADER.unpack_from(buf, cursor)
        length, flags, gfstype = fields[1], fields[7], fields[8]
        if length < VMOUNT_HEADER.size or cursor + length > len(buf):
            raise MalformedRecord(
                f"vmount record {n} at offset {cursor} states invalid length {length}"
            )
        record_end = cursor + length
        slots = list(zip(fields[9::2], fields[10::2]))

        def data(index: int) -> str:
            return _record_string(buf, cursor, record_end, slots[index])

        remote = bool(flags & MNT_REMOTE)
        if remote:
            device_name = f"{data(VMT_HOSTNAME)}:{data(VMT_OBJECT)}"
        else:
            device_name = data(VMT_OBJECT)

        yield RawMountEntry(
            device_name=device_name,
            mount_dir=data(VMT_STUB),
            fs_type=GFS_TYPE_NAMES.get(gfstype, "unknown"),
            options=data(VMT_ARGS),
            remote=remote,
            readonly=bool(flags & MNT_READONLY),
            # vmt_fsid might carry it some day; until then the device is unknown
            device_id=None,
            device_id_authoritative=True,
        )
        cursor = record_end


def libc_mntctl() -> FnMntctl:
    libc = ctypes.CDLL(None, use_errno=True)
    mntctl = libc.mntctl
    mntctl.argtypes = [ctypes.c_int, ctypes.c_int, ctypes.c_char_p]
    mntctl.restype = ctypes.c_int
    return mntctl


def query_vmount_buffer(mntctl: FnMntctl) -> Tuple[bytes, int]:
    """Ask for the required buffer size, then fetch all records into it."""
    size_buf = ctypes.create_string_buffer(ctypes.sizeof(ctypes.c_int))
    ret = mntctl(MCTL_QUERY, ctypes.sizeof(ctypes.c_int), size_buf)
    if ret != 0:
        raise SourceUnavailable(
            "mntctl could not report the mount buffer size", ctypes.get_errno() or None
        )
    bufsize = ctypes.c_int.from_buffer(size_buf).value
    logger.debug(f"mntctl needs a buffer of {bufsize} bytes")

    buf = ctypes.create_string_buffer(bufsize)
    count = mntctl(MCTL_QUERY, bufsize, buf)
    if count < 0:
        raise SourceFailed("mntctl failed to fetch mounts", ctypes.get_errno() or None)
    if count == 0 and bufsize > 0:
        raise SourceFailed("mount table changed size while it was being read")
    return buf.raw, count


@dataclass
class VmountSource:
    load_mntctl: Callable[[], FnMntctl] = libc_mntctl
    platform: str = sys.platform
    reliable_fs_type: bool = False

    def fetch_raw_entries(self) -> Generator[RawMountEntry, None, None]:
        try:
            mntctl = self.load_mntctl()
        except (OSError, AttributeError) as e:
            raise SourceUnavailable(f"mntctl is not available: {e}") from e
        buf, count = query_vmount_buffer(mntctl)
        yield from parse_vmount_buffer(buf, count)
