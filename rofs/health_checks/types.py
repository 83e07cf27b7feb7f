# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
from enum import Enum
from typing import Literal, Protocol

CHECK_TYPE = Literal["prolog", "epilog", "nagios", "app"]
LOG_LEVEL = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class CheckEnv(Protocol):
    @property
    def type(self) -> str: ...

    @property
    def log_level(self) -> str: ...

    @property
    def log_folder(self) -> str: ...


class ExitCode(Enum):
    """The exit code values were selected to be in sync with the Nagios plugin API
    https://nagios-plugins.org/doc/guidelines.html#AEN78
    """

    OK = 0
    CRITICAL = 2
    UNKNOWN = 3
