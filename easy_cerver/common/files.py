# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Rendered template of the stack: written locally, uploaded to S3 and validated by CloudFormation.
"""

from __future__ import annotations

from os import makedirs
from os.path import abspath
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from easy_cerver.common.settings import EasyCerverSettings

from botocore.exceptions import ClientError
from troposphere import Template

from easy_cerver.common import FILE_PREFIX
from easy_cerver.common.logging import LOG

JSON_MIME = "application/json"
YAML_MIME = "application/x-yaml"
MIME_TYPES = {"json": JSON_MIME, "yaml": YAML_MIME}
TEMPLATE_BODY_MAX_SIZE = 51200


def upload_file(
    body: str, bucket_name: str, key: str, settings: EasyCerverSettings, mime: str
) -> str:
    """
    Uploads the body to the bucket, encrypted.

    :return: the https://s3.amazonaws.com/ URL of the object
    :rtype: str
    """
    settings.session.client("s3").put_object(
        Body=body,
        Key=key,
        Bucket=bucket_name,
        ContentEncoding="utf-8",
        ContentType=mime,
        ServerSideEncryption="AES256",
    )
    return f"https://s3.amazonaws.com/{bucket_name}/{key}"


class FileArtifact:
    """
    The CloudFormation template file of the stack.

    :ivar str file_name: name of the file, with the format extension
    :ivar str file_path: path of the file in the output directory
    :ivar str mime: MIME type of the body
    :ivar str body: the rendered template
    :ivar str url: S3 URL of the template, once uploaded
    """

    def __init__(
        self,
        name: str,
        settings: EasyCerverSettings,
        template: Template,
        file_format: str = None,
    ):
        if not isinstance(template, Template):
            raise TypeError("template must be of type", Template, "got", type(template))
        if file_format is None:
            file_format = settings.format
        if file_format not in MIME_TYPES:
            raise ValueError(
                "Format",
                file_format,
                "is not supported. Must be one of",
                list(MIME_TYPES),
            )
        self.template = template
        self.file_format = file_format
        self.file_name = f"{name}.{file_format}"
        self.file_path = f"{settings.output_dir}/{self.file_name}"
        self.mime = MIME_TYPES[file_format]
        self.body = None
        self.url = None

    def __repr__(self):
        return self.file_path

    def define_body(self):
        if self.file_format == "yaml":
            self.body = self.template.to_yaml()
        else:
            self.body = self.template.to_json()

    def write(self, settings: EasyCerverSettings):
        makedirs(settings.output_dir, exist_ok=True)
        with open(self.file_path, "w") as template_fd:
            template_fd.write(self.body)
        LOG.info(f"Template {self.file_name} written at {abspath(self.file_path)}")

    def upload(self, settings: EasyCerverSettings):
        self.url = upload_file(
            self.body,
            settings.bucket_name,
            f"{FILE_PREFIX}/{self.file_name}",
            settings,
            self.mime,
        )
        LOG.info(f"Template {self.file_name} uploaded to {self.url}")

    def validate(self, settings: EasyCerverSettings):
        """
        Validates the template with CloudFormation, from S3 when uploaded, else from its body.
        Bodies too large for the API are not validated locally.
        """
        client = settings.session.client("cloudformation")
        if self.url:
            args = {"TemplateURL": self.url}
        elif len(self.body) < TEMPLATE_BODY_MAX_SIZE:
            args = {"TemplateBody": self.body}
        else:
            LOG.warning(
                f"Template {self.file_name} is too big to be validated without upload. Skipping"
            )
            return
        try:
            client.validate_template(**args)
        except ClientError as error:
            LOG.error(error)
            LOG.error(f"Failed validation template available at {self.file_path}")
            raise
        LOG.info(f"Template {self.file_name} was validated successfully by CFN")

    def create(self, settings: EasyCerverSettings):
        """
        Renders the body, writes it locally, uploads it when the settings allow it and validates it.
        """
        self.define_body()
        self.write(settings)
        if settings.upload and settings.bucket_name:
            self.upload(settings)
        self.validate(settings)
