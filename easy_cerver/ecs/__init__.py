# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
ECS task definition and service of the server, its startup gate and the tasks logging
"""

metadata = {
    "Type": "EasyCerver",
    "Properties": {"Module": "ecs"},
}
