#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

import json
from os import path
from tempfile import TemporaryDirectory

import placebo
from behave import given, then

from easy_cerver.common.aws import deploy
from easy_cerver.common.files import FileArtifact
from easy_cerver.common.settings import EasyCerverSettings
from easy_cerver.easy_cerver import generate_full_template


def here():
    return path.abspath(path.dirname(__file__))


def resources_of_type(context, resource_type: str) -> dict:
    template = context.template.to_dict()
    return {
        name: resource
        for name, resource in template["Resources"].items()
        if resource["Type"] == resource_type
    }


def deploy_with_playback(context, data_dir: str):
    """
    Uploads and validates the template, then creates or updates the stack, with the API calls
    played back from the recorded responses.
    """
    pill = placebo.attach(
        session=context.settings.session, data_path=f"{here()}/{data_dir}"
    )
    pill.playback()
    with TemporaryDirectory() as output_dir:
        context.settings.output_dir = output_dir
        template_file = FileArtifact(
            context.settings.name, settings=context.settings, template=context.template
        )
        template_file.create(context.settings)
        context.stack_id = deploy(context.settings, template_file)


@given("I use {file_path} as my configuration file")
def step_impl(context, file_path):
    """
    Function to import the configuration file from use-cases.

    :param context:
    :param str file_path:
    """
    cases_path = path.abspath(f"{here()}/../../../{file_path}")
    context.settings = EasyCerverSettings(
        profile_name=getattr(context, "profile_name")
        if hasattr(context, "profile_name")
        else None,
        **{
            EasyCerverSettings.name_arg: "test",
            EasyCerverSettings.command_arg: EasyCerverSettings.render_arg,
            EasyCerverSettings.input_file_arg: [cases_path],
            EasyCerverSettings.format_arg: "json",
            EasyCerverSettings.region_arg: "eu-west-1",
        },
    )


@given("I want to use aws profile {profile_name}")
def step_impl(context, profile_name):
    """
    Function to change the session to a specific one.
    """
    context.profile_name = profile_name


@given("I want to upload files to S3 bucket {bucket_name}")
def step_impl(context, bucket_name):
    context.settings.upload = True
    context.settings.no_upload = False
    context.settings.bucket_name = bucket_name


@then("I render the configuration to a template to validate")
def step_impl(context):
    context.template = generate_full_template(context.settings)


@then("I should have {count:d} host records")
def step_impl(context, count):
    assert len(resources_of_type(context, "AWS::Route53::RecordSet")) == count


@then("I should have a single host instance")
def step_impl(context):
    groups = resources_of_type(context, "AWS::AutoScaling::AutoScalingGroup")
    assert len(groups) == 1
    properties = list(groups.values())[0]["Properties"]
    assert properties["MinSize"] == properties["MaxSize"] == "1"
    assert len(resources_of_type(context, "AWS::EC2::EIP")) == 1


@then("I write the template to a temporary directory")
def step_impl(context):
    with TemporaryDirectory() as output_dir:
        context.settings.output_dir = output_dir
        template_file = FileArtifact(
            context.settings.name, settings=context.settings, template=context.template
        )
        template_file.define_body()
        template_file.write(context.settings)
        with open(template_file.file_path) as template_fd:
            assert "CertificateStateMachine" in json.load(template_fd)["Resources"]


@given("I want to deploy to CFN stack named test")
def step_impl(context):
    deploy_with_playback(context, "cfn_create")


@given("I want to update to CFN stack named test")
def step_impl(context):
    deploy_with_playback(context, "cfn_update")


@given("I want to update a failed stack named test")
def step_impl(context):
    deploy_with_playback(context, "cfn_cannot_update")


@then("I should have a stack ID")
def step_impl(context):
    assert context.stack_id is not None


@then("I should not have a stack ID")
def step_impl(context):
    assert context.stack_id is None
