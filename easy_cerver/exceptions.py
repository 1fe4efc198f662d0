#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Custom exceptions for easy-cerver
"""


class EasyCerverException(Exception):
    """
    Top class for Easy Cerver Exceptions
    """

    def __init__(self, msg, *args):
        super().__init__(msg, *args)


class IncompatibleOptions(EasyCerverException):
    """
    Exception when two options conflict, i.e. a security group override without a VPC override
    """


class HostedZoneNotFound(EasyCerverException, LookupError):
    """
    Exception when the public hosted zone for the domain could not be found
    """
