# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Renewal workflow running the certbot task and notifying on failure
"""

metadata = {
    "Type": "EasyCerver",
    "Properties": {"Module": "stepfunctions"},
}
