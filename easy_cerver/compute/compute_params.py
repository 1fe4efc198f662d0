# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Host parameters for CFN
This is a crucial part as all the titles, marked `_T` are string which are then used the same way
across all imports, which gives consistency for CFN to use the same names,
which it heavily relies onto.

You can change the names *values* so you like so long as you keep it [a-zA-Z0-9]
"""

from easy_cerver.common.cfn_params import Parameter

HOST_SETTINGS = "Host Settings"

HOST_ROLE_T = "HostRole"
HOST_PROFILE_T = "HostInstanceProfile"
HOST_SG_T = "HostSg"
LAUNCH_TEMPLATE_T = "HostLaunchTemplate"
HOST_EIP_T = "HostInstanceIp"
HOST_ASG_T = "HostAutoScalingGroup"

HOSTS_COUNT = "1"

ECS_AMI_ID_T = "EcsAmiId"
ECS_AMI_ID = Parameter(
    ECS_AMI_ID_T,
    group_label=HOST_SETTINGS,
    Type="AWS::SSM::Parameter::Value<AWS::EC2::Image::Id>",
    Default="/aws/service/ecs/optimized-ami/amazon-linux-2/recommended/image_id",
)
