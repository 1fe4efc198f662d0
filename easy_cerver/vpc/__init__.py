# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Public-only network for the host and the certificates file system
"""

metadata = {
    "Type": "EasyCerver",
    "Properties": {"Module": "vpc"},
}
