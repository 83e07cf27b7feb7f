# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
import types
from dataclasses import dataclass
from typing import Callable, ContextManager, Literal, Optional, Tuple, Type

import click

from rofs.health_checks.types import CHECK_TYPE, ExitCode
from rofs.schemas.health_check.health_check_name import HealthCheckName


@dataclass
class OutputContext(ContextManager["OutputContext"]):
    """Prints the Nagios status line, followed by the check message, when the
    check exits.

    `nagios` and `app` checks always print it, other types only with
    `verbose_out`.
    """

    type: CHECK_TYPE
    name: HealthCheckName
    get_exit_code_msg: Callable[[], Tuple[ExitCode, str]]
    verbose_out: bool

    def __enter__(self) -> "OutputContext":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_value: Optional[BaseException],
        exc_tb: Optional[types.TracebackType],
    ) -> Literal[False]:
        if exc_type != SystemExit and exc_type is not None:
            click.echo("WARNING - check did not exit normally")
            return False

        if not (self.verbose_out or self.type in ("nagios", "app")):
            return False

        exit_code, msg = self.get_exit_code_msg()
        output_msg = f"{exit_code.name} - {self.name.value}"
        if msg != "":
            output_msg += ". " + msg
        click.echo(output_msg)

        return False
