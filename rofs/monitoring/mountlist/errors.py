# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
"""Failures raised while reading the table of mounted file systems.

Every error is terminal for a single `read_file_system_list` call. The
subclasses only differ in what they tell the logs: whether nothing could be
read at all, or whether a read started and its partial data was discarded.
"""

from typing import Optional


class MountListError(Exception):
    kind = "mount list error"

    def __init__(self, message: str, errno: Optional[int] = None) -> None:
        super().__init__(message)
        self.errno = errno

    def __str__(self) -> str:
        msg = super().__str__()
        if self.errno is not None:
            msg += f" (errno {self.errno})"
        return msg


class SourceUnavailable(MountListError):
    """The OS facility could not be opened or queried at all."""

    kind = "source unavailable"


class SourceFailed(MountListError):
    """The query began but terminated abnormally."""

    kind = "source failed"


class MalformedRecord(SourceFailed):
    """A structured record's internal bounds are invalid."""

    kind = "malformed record"


class LockAcquisitionFailed(MountListError):
    kind = "lock acquisition failed"
