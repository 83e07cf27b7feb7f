# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
import logging
import os
import socket
import sys
from contextlib import ExitStack
from dataclasses import dataclass, field
from typing import Collection, FrozenSet, List, Optional, Protocol, Sequence, Tuple

import click
from typeguard import typechecked

from rofs.health_checks.check_utils.output_context_manager import OutputContext
from rofs.health_checks.click import common_arguments, mount_table_arguments
from rofs.health_checks.types import CHECK_TYPE, CheckEnv, ExitCode, LOG_LEVEL
from rofs.monitoring.mountlist.assembler import read_file_system_list
from rofs.monitoring.mountlist.classify import (
    DEFAULT_CLASSIFICATION,
    FsClassification,
)
from rofs.monitoring.mountlist.errors import MountListError
from rofs.monitoring.mountlist.sources.mtab import MountTableSource
from rofs.monitoring.mountlist.types import MountEntry, MountList
from rofs.monitoring.utils.monitor import init_logger
from rofs.schemas.health_check.health_check_name import HealthCheckName

READONLY_MARKER = " *** readonly! ***"


class ReadonlyFsCheck(CheckEnv, Protocol):
    def read_file_system_list(
        self, need_fs_type: bool, logger: logging.Logger
    ) -> MountList: ...

    def open_filesystem(self, path: str, logger: logging.Logger) -> bool: ...


@dataclass
class ReadonlyFsCheckImpl:
    type: str
    log_level: str
    log_folder: str
    mount_table: Optional[str] = None
    classification: FsClassification = DEFAULT_CLASSIFICATION

    def read_file_system_list(
        self, need_fs_type: bool, logger: logging.Logger
    ) -> MountList:
        source = None
        if self.mount_table is not None:
            logger.info(f"Reading mounts from {self.mount_table}")
            source = MountTableSource(self.mount_table)
        return read_file_system_list(need_fs_type, source, self.classification)

    def open_filesystem(self, path: str, logger: logging.Logger) -> bool:
        """Open `path` so that an automounted file system gets mounted before
        the table is read. Falls back to stat when the path is unreadable.
        """
        try:
            fd: Optional[int] = os.open(path, os.O_RDONLY | os.O_NOCTTY)
        except OSError:
            fd = None

        try:
            if fd is not None:
                os.fstat(fd)
            else:
                os.stat(path)
        except OSError as e:
            logger.warning(f"cannot open {path}: {e.strerror}")
            return False
        finally:
            if fd is not None:
                os.close(fd)
        return True


@dataclass(frozen=True)
class FsTypeFilter:
    selected: FrozenSet[str] = field(default_factory=frozenset)
    excluded: FrozenSet[str] = field(default_factory=frozenset)
    local_only: bool = False

    @property
    def needs_fs_type(self) -> bool:
        return bool(self.selected or self.excluded or self.local_only)

    def conflicts(self) -> List[str]:
        return sorted(self.selected & self.excluded)

    def accepts(self, entry: MountEntry) -> bool:
        if entry.fs_type in self.excluded:
            return False
        if self.selected and entry.fs_type not in self.selected:
            return False
        return not (self.local_only and entry.is_remote)


def format_listing(entry: MountEntry) -> str:
    marker = READONLY_MARKER if entry.is_readonly else ""
    return f"{entry.mount_dir}  ({entry.fs_type}) {marker}".rstrip()


def process_readonly_filesystems(
    mount_list: MountList,
    fs_filter: FsTypeFilter,
    filesystems: Sequence[str],
    check_all: bool,
) -> Tuple[ExitCode, str, List[str]]:
    """Look for read-only mounts.

    Checks every mount when `check_all` is set, otherwise only mounts whose
    directory is one of `filesystems`. Returns the exit code, the status
    message and the listing lines of the checked mounts.
    """
    listing: List[str] = []
    readonly: List[str] = []

    if check_all:
        candidates = [e for e in mount_list if fs_filter.accepts(e)]
    else:
        candidates = []
        for fs in filesystems:
            matches = [e for e in mount_list if e.mount_dir == fs]
            if not all(fs_filter.accepts(e) for e in matches):
                continue
            candidates.extend(matches)

    for entry in candidates:
        listing.append(format_listing(entry))
        if entry.is_readonly and entry.mount_dir not in readonly:
            readonly.append(entry.mount_dir)

    if readonly:
        return (
            ExitCode.CRITICAL,
            f"FILESYSTEMS CRITICAL: {','.join(readonly)} readonly!",
            listing,
        )
    return ExitCode.OK, "FILESYSTEMS OK", listing


@click.command()
@common_arguments
@mount_table_arguments
@click.option(
    "-l",
    "--local",
    "local_only",
    is_flag=True,
    help="Limit listing to local file systems.",
)
@click.option(
    "-L",
    "--list",
    "list_fs",
    is_flag=True,
    help="Display the list of checked file systems.",
)
@click.option(
    "-T",
    "--type",
    "fs_types",
    multiple=True,
    help="Limit listing to file systems of this type.",
)
@click.option(
    "-X",
    "--exclude-type",
    "exclude_types",
    multiple=True,
    help="Limit listing to file systems not of this type.",
)
@click.argument("filesystems", nargs=-1, type=click.Path())
@click.pass_obj
@typechecked
def check_readonlyfs(
    obj: Optional[ReadonlyFsCheck],
    type: CHECK_TYPE,
    log_level: LOG_LEVEL,
    log_folder: str,
    verbose_out: bool,
    mount_table: Optional[str],
    network_fs_types: Collection[str],
    local_only: bool,
    list_fs: bool,
    fs_types: Collection[str],
    exclude_types: Collection[str],
    filesystems: Collection[str],
) -> None:
    """Check for file systems mounted read-only.

    Checks every mounted file system, or only FILESYSTEMS when given.
    """
    node: str = socket.gethostname()
    logger, _ = init_logger(
        logger_name=type,
        log_dir=os.path.join(log_folder, type + "_logs"),
        log_name=node + ".log",
        log_level=getattr(logging, log_level),
    )
    logger.info(
        f"check-readonlyfs: node: {node}, type: {type}, filesystems: {list(filesystems)}"
    )

    if obj is None:
        obj = ReadonlyFsCheckImpl(
            type,
            log_level,
            log_folder,
            mount_table=mount_table,
            classification=DEFAULT_CLASSIFICATION.extended(
                network_fs_types=network_fs_types
            ),
        )

    exit_code = ExitCode.UNKNOWN
    msg = ""
    with ExitStack() as s:
        s.enter_context(
            OutputContext(
                type,
                HealthCheckName.CHECK_READONLYFS,
                lambda: (exit_code, msg),
                verbose_out,
            )
        )

        fs_filter = FsTypeFilter(
            frozenset(fs_types), frozenset(exclude_types), local_only
        )
        conflicts = fs_filter.conflicts()
        if conflicts:
            msg = f"file system type(s) both selected and excluded: {', '.join(conflicts)}"
            logger.error(msg)
            sys.exit(exit_code.value)

        reachable = [fs for fs in filesystems if obj.open_filesystem(fs, logger)]

        try:
            mount_list = obj.read_file_system_list(fs_filter.needs_fs_type, logger)
        except MountListError as e:
            msg = f"cannot read table of mounted file systems: {e}"
            logger.error(f"{msg} ({e.kind})")
            sys.exit(exit_code.value)

        exit_code, msg, listing = process_readonly_filesystems(
            mount_list, fs_filter, reachable, check_all=not filesystems
        )
        if list_fs:
            for line in listing:
                click.echo(line)

        logger.info(f"exit code {exit_code}: {msg}")
        sys.exit(exit_code.value)
