# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Titles and settings of the ECS resources
"""

LOG_GROUP_T = "ContainersLogGroup"
LOG_GROUP_RETENTION = 731

EXEC_ROLE_T = "EcsExecutionRole"
SERVER_TASK_T = "ServerTaskDefinition"
SERVER_TASK_ROLE_T = "ServerTaskRole"
SERVICE_T = "ServerService"

DEFAULT_CONTAINER_NAME = "nginx"
DEFAULT_CONTAINER_IMAGE = "public.ecr.aws/nginx/nginx:stable"
DEFAULT_MEMORY_RESERVATION = 64
DEFAULT_LOGS_PREFIX = "nginx-proxy"

GATE_CONTAINER_NAME = "aws-cli"
GATE_POLL_SECONDS = 10
