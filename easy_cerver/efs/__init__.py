# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Shared file system storing the Let's Encrypt certificates, the certificate store
"""

metadata = {
    "Type": "EasyCerver",
    "Properties": {"Module": "efs"},
}
