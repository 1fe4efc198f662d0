# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

from os import path

import boto3
import pytest

from easy_cerver.common.settings import EasyCerverSettings, load_config_file

HERE = path.abspath(path.dirname(__file__))
USE_CASES = path.abspath(f"{HERE}/../../use-cases")


class StubbedSession:
    """
    Session returning the same stubbed client for a given service, so that a Stubber
    applies to the clients created by the code under test.
    """

    def __init__(self, region_name="eu-west-1", **clients):
        self.region_name = region_name
        self.clients = clients

    def client(self, service_name, **kwargs):
        return self.clients[service_name]


def use_case_path(name: str) -> str:
    return f"{USE_CASES}/{name}.yml"


def load_use_case(name: str) -> dict:
    return load_config_file(use_case_path(name))


def create_settings(content=None, session=None, command="render", **kwargs):
    if session is None:
        session = boto3.session.Session(region_name="eu-west-1")
    args = {
        EasyCerverSettings.name_arg: "test",
        EasyCerverSettings.command_arg: command,
        EasyCerverSettings.format_arg: "json",
    }
    args.update(kwargs)
    return EasyCerverSettings(content=content, session=session, **args)


def resources_of_type(template_dict: dict, resource_type: str) -> dict:
    return {
        name: resource
        for name, resource in template_dict["Resources"].items()
        if resource["Type"] == resource_type
    }


@pytest.fixture
def minimal_content():
    return load_use_case("minimal")


@pytest.fixture
def multi_domains_content():
    return load_use_case("multi-domains")


@pytest.fixture
def existing_vpc_content():
    return load_use_case("existing-vpc")


@pytest.fixture
def custom_server_content():
    return load_use_case("custom-server")
