# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Most commonly used functions shared across all modules.
"""

from __future__ import annotations

from datetime import datetime as dt
from uuid import uuid4

from troposphere import Output, Parameter, Template


DATE = dt.utcnow().isoformat()
FILE_PREFIX = f'{dt.utcnow().strftime("%Y/%m/%d/%H%M")}/{str(uuid4().hex)[:6]}'


def init_template(description=None) -> Template:
    """Function to initialize the troposphere base template

    :param str description: Description used for the CFN
    :returns: template
    :rtype: troposphere.Template
    """
    if description is not None:
        template = Template(description)
    else:
        template = Template("Template generated by Easy Cerver")
    template.set_metadata(
        {
            "Type": "EasyCerver",
            "Properties": {"Version": "2020-01-01", "GeneratedAt": DATE},
        }
    )
    template.set_version()
    return template


def add_parameters(template: Template, parameters: list) -> None:
    """Function to add parameters to the template

    :param troposphere.Template template: the template to add the parameters to
    :param list parameters: list of parameters to add to the template
    """
    for param in parameters:
        if not isinstance(param, Parameter):
            raise TypeError("Expected", Parameter, "got", type(param))
        if param.title in template.parameters:
            continue
        template.add_parameter(param)


def build_template(description=None, *parameters) -> Template:
    """
    Entry point function to creating the template for ECS Services.
    Returns a template with all the default parameters and so on

    :param str description: optional description of the template
    :param list parameters: list of lists of parameters to add
    :return: the template
    :rtype: troposphere.Template
    """
    template = init_template(description)
    if parameters:
        for param_list in parameters:
            add_parameters(template, param_list)
    return template


def add_outputs(template: Template, outputs: list) -> None:
    """
    Function to add outputs to the template, overriding existing ones of the same name

    :param troposphere.Template template:
    :param list outputs:
    """
    for output in outputs:
        if not isinstance(output, Output):
            raise TypeError("Expected", Output, "got", type(output))
        if output.title in template.outputs:
            template.outputs[output.title] = output
        else:
            template.add_output(output)


REMOVAL_POLICIES = {
    "destroy": "Delete",
    "retain": "Retain",
    "retain_except_on_create": "RetainExceptOnCreate",
}


def set_removal_policy(resource, removal_policy: str):
    """
    Sets the DeletionPolicy and UpdateReplacePolicy of a stateful resource

    :param troposphere.AWSObject resource:
    :param str removal_policy: one of destroy, retain, retain_except_on_create
    :raises: KeyError if the removal policy is not supported
    """
    if removal_policy not in REMOVAL_POLICIES:
        raise KeyError(
            "RemovalPolicy", removal_policy, "must be one of", list(REMOVAL_POLICIES)
        )
    policy = REMOVAL_POLICIES[removal_policy]
    resource.DeletionPolicy = policy
    resource.UpdateReplacePolicy = (
        "Retain" if policy == "RetainExceptOnCreate" else policy
    )
    return resource
