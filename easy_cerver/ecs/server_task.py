# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Task definition of the server.

Without ServerTask in the configuration, a sample nginx container serves HTTPS for all the domain names.
In both cases, the default container (first essential one) gets the certificates mounted read-only
and waits for the startup gate.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from easy_cerver.common.settings import EasyCerverSettings
    from easy_cerver.ecs.task_logging import TasksLogging

from importlib_resources import files as pkg_files
from troposphere import GetAtt, Template
from troposphere.ecs import (
    ContainerDefinition,
    Environment,
    MountPoint,
    PortMapping,
    TaskDefinition,
)
from troposphere.iam import Role

from easy_cerver.common.logging import LOG
from easy_cerver.ecs import metadata
from easy_cerver.ecs.ecs_params import (
    DEFAULT_CONTAINER_IMAGE,
    DEFAULT_CONTAINER_NAME,
    DEFAULT_LOGS_PREFIX,
    DEFAULT_MEMORY_RESERVATION,
    SERVER_TASK_ROLE_T,
    SERVER_TASK_T,
)
from easy_cerver.ecs.startup_gate import (
    define_gate_container,
    define_gate_dependency,
    gate_statement,
)
from easy_cerver.efs.efs_params import CERTS_CONTAINER_PATH, CERTS_VOLUME_NAME
from easy_cerver.efs.efs_template import define_certs_volume, efs_access_statement
from easy_cerver.iam import allow_statement, define_inline_policy, service_role_trust_policy
from easy_cerver.resources_import import import_record_properties


NGINX_TEMPLATES_DIR = "/etc/nginx/templates"
SERVER_PORTS = (80, 443)


def get_nginx_config_template() -> str:
    """
    :return: the nginx server blocks, with ${SERVER_NAME} and ${CERT_NAME} set at container start
    :rtype: str
    """
    return (
        pkg_files("easy_cerver.ecs")
        .joinpath("nginx/default.conf.template")
        .read_text()
    )


def define_nginx_entrypoint_script() -> str:
    """
    Writes the server blocks template where the nginx image entrypoint renders templates from
    environment variables, then starts nginx.
    """
    return "\n".join(
        [
            f"mkdir -p {NGINX_TEMPLATES_DIR}",
            f"cat > {NGINX_TEMPLATES_DIR}/default.conf.template <<'EOF'",
            get_nginx_config_template().rstrip("\n"),
            "EOF",
            "exec /docker-entrypoint.sh nginx -g 'daemon off;'",
        ]
    )


def define_default_container(
    settings: EasyCerverSettings, tasks_logging: TasksLogging
) -> ContainerDefinition:
    """
    The sample nginx container, listening on 80 and 443 of the host.

    :param EasyCerverSettings settings:
    :param TasksLogging tasks_logging:
    :rtype: troposphere.ecs.ContainerDefinition
    """
    return ContainerDefinition(
        Name=DEFAULT_CONTAINER_NAME,
        Image=DEFAULT_CONTAINER_IMAGE,
        Essential=True,
        MemoryReservation=DEFAULT_MEMORY_RESERVATION,
        EntryPoint=["/bin/sh", "-c"],
        Command=[define_nginx_entrypoint_script()],
        Environment=[
            Environment(
                Name="SERVER_NAME", Value=" ".join(settings.record_domain_names)
            ),
            Environment(Name="CERT_NAME", Value=settings.cert_name),
        ],
        PortMappings=[
            PortMapping(ContainerPort=port, HostPort=port, Protocol="tcp")
            for port in SERVER_PORTS
        ],
        LogConfiguration=tasks_logging.log_configuration(DEFAULT_LOGS_PREFIX),
    )


def get_default_container(task_definition: TaskDefinition) -> ContainerDefinition:
    """
    The first essential container of the task definition. Essential is true when not set.

    :param troposphere.ecs.TaskDefinition task_definition:
    :rtype: troposphere.ecs.ContainerDefinition
    :raises: ValueError when there is no essential container
    """
    for container in task_definition.ContainerDefinitions:
        if not hasattr(container, "Essential") or container.Essential in (
            True,
            "true",
            "True",
        ):
            return container
    raise ValueError(
        f"{task_definition.title} - No essential container in the task definition"
    )


def get_container_mount_points(container: ContainerDefinition) -> list:
    """
    :return: list of mount points of the container definition, set on the container if new
    :rtype: list
    """
    if not hasattr(container, "MountPoints"):
        setattr(container, "MountPoints", [])
    return getattr(container, "MountPoints")


def get_container_dependencies(container: ContainerDefinition) -> list:
    """
    :return: list of container dependencies of the container definition, set on the container if new
    :rtype: list
    """
    if not hasattr(container, "DependsOn"):
        setattr(container, "DependsOn", [])
    return getattr(container, "DependsOn")


def get_volumes(task_definition: TaskDefinition) -> list:
    """
    Function to fetch the volumes from the task definition

    :param troposphere.ecs.TaskDefinition task_definition:
    :return: the volumes list of the task definition or new ones
    :rtype: list
    """
    if not hasattr(task_definition, "Volumes"):
        setattr(task_definition, "Volumes", [])
    return getattr(task_definition, "Volumes")


def import_server_task_definition(
    properties: dict, tasks_logging: TasksLogging
) -> TaskDefinition:
    """
    Imports the task definition from the ServerTask properties.
    Containers without logging configuration get the awslogs one.

    :param dict properties: AWS::ECS::TaskDefinition properties
    :param TasksLogging tasks_logging:
    :rtype: troposphere.ecs.TaskDefinition
    """
    task_props = import_record_properties(properties, TaskDefinition)
    task_definition = TaskDefinition(SERVER_TASK_T, **task_props)
    for container in task_definition.ContainerDefinitions:
        if not hasattr(container, "LogConfiguration"):
            container.LogConfiguration = tasks_logging.log_configuration(
                container.Name
            )
    if hasattr(task_definition, "TaskRoleArn"):
        LOG.warning(
            f"{SERVER_TASK_T} - TaskRoleArn is replaced with the role allowed to mount the certificates."
        )
    return task_definition


def add_server_task_role(template: Template, file_system, state_machine) -> Role:
    """
    Role of the server task: read access to the certificates, start and follow the renewal
    and ECS Exec channels.
    """
    return Role(
        SERVER_TASK_ROLE_T,
        template=template,
        AssumeRolePolicyDocument=service_role_trust_policy("ecs-tasks"),
        Policies=[
            define_inline_policy(
                "AllowCertificatesRead",
                [efs_access_statement(file_system, ["elasticfilesystem:ClientMount"])],
            ),
            define_inline_policy(
                "AllowCertificateRenewalGate", [gate_statement(state_machine)]
            ),
            define_inline_policy(
                "AllowEcsExec",
                [
                    allow_statement(
                        [
                            "ssmmessages:CreateControlChannel",
                            "ssmmessages:CreateDataChannel",
                            "ssmmessages:OpenControlChannel",
                            "ssmmessages:OpenDataChannel",
                        ],
                        "*",
                    )
                ],
            ),
        ],
        Metadata=metadata,
    )


def add_server_task(
    template: Template,
    settings: EasyCerverSettings,
    tasks_logging: TasksLogging,
    execution_role: Role,
    file_system,
    state_machine,
) -> TaskDefinition:
    """
    Adds the server task definition: the default container, or the ones from ServerTask,
    with the certificates volume and the startup gate container.

    :param troposphere.Template template:
    :param EasyCerverSettings settings:
    :param TasksLogging tasks_logging:
    :param troposphere.iam.Role execution_role:
    :param troposphere.efs.FileSystem file_system:
    :param troposphere.stepfunctions.StateMachine state_machine:
    :rtype: troposphere.ecs.TaskDefinition
    """
    if settings.server_task_properties:
        task_definition = import_server_task_definition(
            settings.server_task_properties, tasks_logging
        )
    else:
        task_definition = TaskDefinition(
            SERVER_TASK_T,
            ContainerDefinitions=[define_default_container(settings, tasks_logging)],
        )
    task_role = add_server_task_role(template, file_system, state_machine)
    task_definition.TaskRoleArn = GetAtt(task_role, "Arn")
    if not hasattr(task_definition, "ExecutionRoleArn"):
        task_definition.ExecutionRoleArn = GetAtt(execution_role, "Arn")
    if not hasattr(task_definition, "NetworkMode"):
        task_definition.NetworkMode = "bridge"
    task_definition.RequiresCompatibilities = ["EC2"]
    task_definition.Metadata = metadata
    get_volumes(task_definition).append(define_certs_volume(file_system))

    default_container = get_default_container(task_definition)
    get_container_mount_points(default_container).append(
        MountPoint(
            SourceVolume=CERTS_VOLUME_NAME,
            ContainerPath=CERTS_CONTAINER_PATH,
            ReadOnly=True,
        )
    )
    get_container_dependencies(default_container).append(
        define_gate_dependency(settings.strict_certificate_gate)
    )
    task_definition.ContainerDefinitions.append(
        define_gate_container(
            state_machine,
            settings.aws_cli_tag,
            tasks_logging,
            settings.strict_certificate_gate,
        )
    )
    template.add_resource(task_definition)
    return task_definition
