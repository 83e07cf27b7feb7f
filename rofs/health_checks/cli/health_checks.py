# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
"""A single entrypoint into the health check scripts.

This file is intentionally lightweight and should not include any complex logic.
"""

from typing import List

import click

from rofs._version import __version__
from rofs.health_checks import checks
from rofs.health_checks.click import DEFAULT_CONFIG_PATH
from rofs.monitoring.click import toml_config_option


@click.group(epilog=f"health_checks version: {__version__}")
@toml_config_option("health_checks", default_config_path=DEFAULT_CONFIG_PATH)
@click.version_option(__version__)
def health_checks() -> None:
    """Read-only file system monitoring checks."""


list_of_checks: List[click.Command] = [
    checks.check_readonlyfs,
]

for check in list_of_checks:
    health_checks.add_command(check)

if __name__ == "__main__":
    health_checks()
