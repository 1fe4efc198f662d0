# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

import pytest
from troposphere.ecs import ContainerDefinition, PortMapping, TaskDefinition

from easy_cerver.resources_import import import_record_properties


def test_import_task_definition(custom_server_content):
    properties = custom_server_content["ServerTask"]["Properties"]
    task_definition = TaskDefinition(
        "ServerTaskDefinition",
        **import_record_properties(properties, TaskDefinition),
    )
    containers = task_definition.ContainerDefinitions
    assert all(isinstance(container, ContainerDefinition) for container in containers)
    assert isinstance(containers[1].PortMappings[0], PortMapping)
    assert task_definition.to_dict()["Properties"]["Family"] == "my-app"


def test_unknown_property():
    with pytest.raises(KeyError):
        import_record_properties(
            {"ContainerDefinitions": [], "Containers": []}, TaskDefinition
        )
    with pytest.raises(KeyError):
        import_record_properties(
            {"ContainerDefinitions": [{"Name": "app", "Image": "nginx", "Ports": 80}]},
            TaskDefinition,
        )


def test_missing_required_property():
    properties = import_record_properties({"Image": "nginx"}, ContainerDefinition)
    assert properties == {"Image": "nginx"}
    with pytest.raises(ValueError):
        ContainerDefinition(**properties).to_dict()
