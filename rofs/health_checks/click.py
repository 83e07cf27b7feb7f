# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
"""Helper functionality for click commands"""

from functools import wraps
from typing import Callable, get_args, TypeVar

import click
from typing_extensions import ParamSpec

from rofs.health_checks.types import CHECK_TYPE, LOG_LEVEL

P = ParamSpec("P")
R = TypeVar("R")


DEFAULT_CONFIG_PATH = "/etc/rofs/config.toml"


def common_arguments(f: Callable[P, R]) -> Callable[P, R]:
    @click.argument(
        "type",
        type=click.Choice(
            get_args(CHECK_TYPE),
            case_sensitive=True,
        ),
    )
    @click.option(
        "--log-level",
        type=click.Choice(get_args(LOG_LEVEL)),
        default="INFO",
        show_default=True,
        help="Logging verbosity level.",
    )
    @click.option(
        "--log-folder",
        type=click.Path(file_okay=False),
        default="healthchecks",
        help="The folder where logs will be stored.",
    )
    @click.option(
        "--verbose-out",
        is_flag=True,
        help="Flag for printing verbose output on stdout",
    )
    @wraps(f)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        return f(*args, **kwargs)

    return wrapper


def mount_table_arguments(f: Callable[P, R]) -> Callable[P, R]:
    @click.option(
        "--mount-table",
        type=click.Path(dir_okay=False),
        default=None,
        help="Read mounts from this table file instead of the platform's mount source.",
    )
    @click.option(
        "--network-fs-type",
        "network_fs_types",
        multiple=True,
        help="Additional network share type whose '//host/share' devices are remote.",
    )
    @wraps(f)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        return f(*args, **kwargs)

    return wrapper
