# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
from rofs.health_checks.checks.check_readonlyfs import check_readonlyfs

__all__ = [
    "check_readonlyfs",
]
