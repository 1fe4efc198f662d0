# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Topic notified when the certificate renewal fails
"""

metadata = {
    "Type": "EasyCerver",
    "Properties": {"Module": "sns"},
}
