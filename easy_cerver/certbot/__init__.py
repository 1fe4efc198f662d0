# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Certbot task obtaining the Let's Encrypt certificates with the DNS-01 challenge, the issuance job
"""

metadata = {
    "Type": "EasyCerver",
    "Properties": {"Module": "certbot"},
}
