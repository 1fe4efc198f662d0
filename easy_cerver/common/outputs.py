# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Functions to format CFN template Outputs
"""

from troposphere import AWS_STACK_NAME, AWSHelperFn, AWSObject, Export, Output, Sub

from easy_cerver.common.cfn_params import Parameter

CFN_EXPORT_DELIMITER = "::"


def validate(value):
    """
    Method to validate the input
    :raises: ValueError
    """
    if not len(value) == 3:
        raise ValueError(
            "Output argument expects Name, AttributeName, Value. Only got", len(value)
        )
    if not isinstance(value[0], (Parameter, str)):
        raise TypeError("Name should be of type", str, Parameter, "Got", type(value[0]))
    if not isinstance(value[1], str):
        raise TypeError("AttributeName should be of type", str, "Got", type(value[1]))

    valid_type = issubclass(type(value[2]), AWSHelperFn)
    if not (valid_type or isinstance(value[2], (str, int))):
        raise TypeError("Value type is", type(value[2]), "Expected", str, AWSHelperFn)


class CerverOutput:
    """
    Class to make the output easier.

    Outputs are named after the resource title and the attribute name, i.e. ``HostInstanceIpAddress``.
    When exported, the export name is ``<stack name>::<resource title>::<attribute>``.
    """

    delim = CFN_EXPORT_DELIMITER
    stack_string_base = f"${{{AWS_STACK_NAME}}}{delim}"

    def __init__(self, resource, values, export=False):
        """
        :param resource: The object to export attributes for.
        :param list values: list of tuples (Name, AttributeName, Value)
        :param bool export: whether to export the values
        """
        self.object_repr = None
        self.validate_input(resource)
        self.values = values
        self.outputs = []

        for value in self.values:
            if not isinstance(value, tuple):
                raise TypeError(
                    "All values should be a tuple of (str, value). Got", type(value)
                )
            validate(value)
            attr_name = (
                value[0] if not isinstance(value[0], Parameter) else value[0].title
            )
            output = Output(f"{self.object_repr}{value[1]}", Value=value[2])
            if export:
                output.Export = Export(
                    Sub(
                        f"{self.stack_string_base}{self.object_repr}{self.delim}{attr_name}"
                    )
                )
            self.outputs.append(output)

    def validate_input(self, resource):
        if issubclass(type(resource), AWSObject) and hasattr(resource, "title"):
            self.object_repr = resource.title
        elif isinstance(resource, str):
            self.object_repr = resource
        else:
            raise TypeError(
                "resource must be one of", AWSObject, str, "Got", type(resource)
            )
