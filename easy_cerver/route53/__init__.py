# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Public hosted zone lookup and the DNS records pointing to the host
"""

metadata = {
    "Type": "EasyCerver",
    "Properties": {"Module": "route53"},
}
