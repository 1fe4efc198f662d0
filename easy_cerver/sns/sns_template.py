# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Module to add the notification topic and its email subscription
"""

from troposphere import Template
from troposphere.sns import SubscriptionResource, Topic

from easy_cerver.sns import metadata

TOPIC_T = "CertificateFailureTopic"
SUBSCRIPTION_T = "CertificateFailureEmailSubscription"


def add_notification_topic(template: Template, email: str) -> Topic:
    """
    Adds the SNS topic and subscribes the email address to it.
    The subscription must be confirmed from the email sent by AWS.

    :param troposphere.Template template:
    :param str email:
    :rtype: troposphere.sns.Topic
    """
    topic = Topic(
        TOPIC_T,
        template=template,
        DisplayName="Easy Cerver certificate renewal",
        Metadata=metadata,
    )
    SubscriptionResource(
        SUBSCRIPTION_T,
        template=template,
        TopicArn=topic.ref(),
        Protocol="email",
        Endpoint=email,
    )
    return topic
