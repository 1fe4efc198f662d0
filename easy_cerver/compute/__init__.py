# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Single EC2 host running the ECS tasks, with its static IP address
"""

metadata = {
    "Type": "EasyCerver",
    "Properties": {"Module": "compute"},
}
