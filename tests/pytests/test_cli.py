# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

import pytest
from conftest import use_case_path

from easy_cerver.cli import main_parser, render_config
from easy_cerver.common.settings import EasyCerverSettings


def test_render_arguments():
    args = main_parser().parse_args(
        [
            "render",
            "-n",
            "test",
            "-f",
            use_case_path("minimal"),
            "-f",
            use_case_path("multi-domains"),
            "--format",
            "yaml",
        ]
    )
    assert args.command == "render"
    assert getattr(args, EasyCerverSettings.name_arg) == "test"
    assert getattr(args, EasyCerverSettings.format_arg) == "yaml"
    assert len(getattr(args, EasyCerverSettings.input_file_arg)) == 2
    assert args.DisableRollback is False


def test_config_requires_files():
    with pytest.raises(SystemExit):
        main_parser().parse_args(["config"])


def test_render_config(capsys):
    args = main_parser().parse_args(["config", "-f", use_case_path("multi-domains")])
    assert render_config(args) == 0
    output = capsys.readouterr().out
    assert "RecordDomainNames:" in output
    assert "CertbotScheduleInterval: 30" in output
