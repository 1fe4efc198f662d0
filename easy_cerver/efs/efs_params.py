# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Titles and settings of the certificates file system
"""

FS_T = "CertificatesFileSystem"
FS_SG_T = "CertificatesFileSystemSg"
FS_PORT = 2049

CERTS_VOLUME_NAME = "certVolume"
CERTS_CONTAINER_PATH = "/etc/letsencrypt"
