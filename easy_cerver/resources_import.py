# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Module to import CFN Resources defined by their properties in the configuration,
i.e. the task definition of the server.
"""

from __future__ import annotations

from inspect import isfunction

from compose_x_common.compose_x_common import keypresent
from troposphere import AWSHelperFn, AWSProperty


def import_list(properties: list, property_class) -> list:
    """
    Renders each item of a list property, recursing into the AWSProperty items.

    :param list properties:
    :param property_class: the class of the list items
    :rtype: list
    """
    rendered_properties = []
    for property_definition in properties:
        if isinstance(property_definition, dict) and issubclass(
            property_class, AWSProperty
        ):
            record = import_record_properties(property_definition, property_class)
            rendered_properties.append(property_class(**record))
        else:
            rendered_properties.append(property_definition)
    return rendered_properties


def import_property(prop_type, value):
    """
    Renders a single property value for the expected type

    :param prop_type: type declared by troposphere for the property
    :param value: value from the configuration
    """
    if isinstance(value, AWSHelperFn) or isfunction(prop_type):
        return value
    if isinstance(prop_type, list):
        return import_list(value, prop_type[0])
    if prop_type in (str, int, float) and isinstance(value, (str, int, float)):
        return prop_type(value)
    if (
        isinstance(value, dict)
        and isinstance(prop_type, type)
        and issubclass(prop_type, AWSProperty)
    ):
        return prop_type(**import_record_properties(value, prop_type))
    return value


def import_record_properties(properties: dict, top_class) -> dict:
    """
    Generic function importing the properties of a troposphere resource or property from a dict.

    :param dict properties:
    :param top_class: The class we are going to import properties for
    :return: The properties, ready to use as kwargs of top_class
    :rtype: dict
    :raises: KeyError if an unknown property is set. Required ones are checked by troposphere on render
    """
    unknown = [name for name in properties if name not in top_class.props]
    if unknown:
        raise KeyError(
            f"Properties {unknown} are not valid for {top_class.__name__}",
            list(top_class.props),
        )
    props = {}
    for prop_name, prop_def in top_class.props.items():
        if not keypresent(prop_name, properties):
            continue
        props[prop_name] = import_property(prop_def[0], properties[prop_name])
    return props
