# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Schedule of the certificate renewal
"""

metadata = {
    "Type": "EasyCerver",
    "Properties": {"Module": "events"},
}
