# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
from pathlib import Path
from typing import Optional, Sequence

import click
import pytest
from click.testing import CliRunner
from typeguard import typechecked

from rofs.monitoring.click import toml_config_option


def _write_config(path: Path, contents: str) -> Path:
    path.write_text(contents)
    return path


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    return _write_config(
        tmp_path / "config.toml",
        """
        [rofs]
        mount_table = "/proc/self/mounts"
        exclude_types = ["tmpfs", "nfs"]
        not_an_option = 42

        [not-rofs]
        mount_table = "/etc/mtab"
        """,
    )


def _command(default_config_path: Path) -> click.Command:
    @click.command()
    @toml_config_option("rofs", default_config_path=default_config_path)
    @click.option("--mount-table", default="/etc/mtab")
    @click.option("-X", "exclude_types", multiple=True)
    def main(mount_table: Optional[str], exclude_types: Sequence[str]) -> None:
        click.echo(mount_table)
        click.echo(",".join(exclude_types))

    return main


@pytest.mark.parametrize(
    "args, expected_stdout",
    [
        ([], "/proc/self/mounts\ntmpfs,nfs\n"),
        (["--mount-table", "/tmp/mtab"], "/tmp/mtab\ntmpfs,nfs\n"),
        (["-X", "xfs"], "/proc/self/mounts\nxfs\n"),
        (["--config", "/dev/null"], "/etc/mtab\n\n"),
    ],
)
@typechecked
def test_uses_correct_value(
    config_path: Path, args: Sequence[str], expected_stdout: str
) -> None:
    runner = CliRunner()

    r = runner.invoke(_command(config_path), args, catch_exceptions=False)

    assert r.exit_code == 0
    assert r.stdout == expected_stdout


def test_nonexistent_config_is_ignored(tmp_path: Path) -> None:
    runner = CliRunner()

    r = runner.invoke(
        _command(tmp_path / "does_not_exist"), [], catch_exceptions=False
    )

    assert r.exit_code == 0
    assert r.stdout == "/etc/mtab\n\n"


def test_invalid_toml_errors(tmp_path: Path) -> None:
    config_path = _write_config(tmp_path / "not_toml", "]] oops")
    runner = CliRunner()

    r = runner.invoke(
        _command(Path("/dev/null")),
        ["--config", str(config_path)],
        catch_exceptions=False,
    )

    assert r.exit_code != 0
    assert r.stdout == ""
    assert f"{config_path} does not contain valid TOML." in r.stderr


def test_missing_table_errors(tmp_path: Path) -> None:
    config_path = _write_config(
        tmp_path / "config.toml",
        """
        [not-rofs]
        mount_table = "/etc/mtab"
        """,
    )
    runner = CliRunner()

    r = runner.invoke(_command(config_path), catch_exceptions=False)

    assert r.exit_code != 0
    assert (
        f"'rofs' is not a top-level table name in {config_path}. "
        "Valid names: ['not-rofs']"
    ) in r.stderr


def test_config_propagates_to_subcommands(tmp_path: Path) -> None:
    config_path = _write_config(
        tmp_path / "config.toml",
        """
        [rofs]
        log_level = "DEBUG"

        [rofs.check]
        local = true
        """,
    )
    runner = CliRunner()

    @click.group()
    @toml_config_option("rofs", default_config_path=config_path)
    @click.option("--log-level", default="INFO")
    def group(log_level: str) -> None:
        click.echo(log_level)

    @group.command()
    @click.option("--local", is_flag=True)
    def check(local: bool) -> None:
        click.echo(local)

    r = runner.invoke(group, ["check"], catch_exceptions=False)

    assert r.exit_code == 0
    assert r.stdout == "DEBUG\nTrue\n"
