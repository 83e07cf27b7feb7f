# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
from enum import Enum


class HealthCheckName(Enum):
    CHECK_READONLYFS = "check readonly filesystems"
