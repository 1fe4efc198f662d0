# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

import json

import pytest
from conftest import create_settings, load_use_case, resources_of_type

from easy_cerver.easy_cerver import generate_full_template

ALL_USE_CASES = ["minimal", "multi-domains", "existing-vpc", "custom-server"]


def render(content) -> dict:
    settings = create_settings(content)
    return json.loads(generate_full_template(settings).to_json())


def get_container(task: dict, name: str) -> dict:
    for container in task["Properties"]["ContainerDefinitions"]:
        if container["Name"] == name:
            return container
    raise KeyError(name)


def test_one_record_per_domain(minimal_content, multi_domains_content):
    records = resources_of_type(render(minimal_content), "AWS::Route53::RecordSet")
    assert len(records) == 1
    record = list(records.values())[0]["Properties"]
    assert record["Name"] == "example.com"
    assert record["Type"] == "A"
    assert record["ResourceRecords"] == [{"Ref": "HostInstanceIp"}]

    records = resources_of_type(
        render(multi_domains_content), "AWS::Route53::RecordSet"
    )
    assert sorted(record["Properties"]["Name"] for record in records.values()) == [
        "api.example.com",
        "example.com",
        "www.example.com",
    ]


@pytest.mark.parametrize("use_case", ALL_USE_CASES)
def test_single_host(use_case):
    template = render(load_use_case(use_case))
    groups = resources_of_type(template, "AWS::AutoScaling::AutoScalingGroup")
    assert len(groups) == 1
    group = list(groups.values())[0]["Properties"]
    assert group["MinSize"] == "1"
    assert group["MaxSize"] == "1"


@pytest.mark.parametrize("use_case", ALL_USE_CASES)
def test_retry_interval(use_case):
    template = render(load_use_case(use_case))
    machine = template["Resources"]["CertificateStateMachine"]["Properties"]
    retry = machine["Definition"]["States"]["CreateCertificate"]["Retry"]
    assert [rule["IntervalSeconds"] for rule in retry] == [20]


def test_schedule(minimal_content, multi_domains_content):
    rule = render(minimal_content)["Resources"]["CertificateRenewalSchedule"]
    assert rule["Properties"]["ScheduleExpression"] == "rate(60 days)"
    assert rule["Properties"]["Targets"][0]["Arn"] == {
        "Ref": "CertificateStateMachine"
    }
    rule = render(multi_domains_content)["Resources"]["CertificateRenewalSchedule"]
    assert rule["Properties"]["ScheduleExpression"] == "rate(30 days)"


@pytest.mark.parametrize("use_case", ALL_USE_CASES)
def test_certificates_mounts(use_case):
    template = render(load_use_case(use_case))
    certbot = get_container(
        template["Resources"]["CertbotTaskDefinition"], "certbot"
    )
    assert certbot["MountPoints"] == [
        {
            "ContainerPath": "/etc/letsencrypt",
            "ReadOnly": False,
            "SourceVolume": "certVolume",
        }
    ]
    server_task = template["Resources"]["ServerTaskDefinition"]
    mounts = [
        mount_point
        for container in server_task["Properties"]["ContainerDefinitions"]
        for mount_point in container.get("MountPoints", [])
        if mount_point["SourceVolume"] == "certVolume"
    ]
    assert mounts == [
        {
            "ContainerPath": "/etc/letsencrypt",
            "ReadOnly": True,
            "SourceVolume": "certVolume",
        }
    ]


def test_default_server(minimal_content, multi_domains_content):
    template = render(multi_domains_content)
    task = template["Resources"]["ServerTaskDefinition"]
    nginx = get_container(task, "nginx")
    assert nginx["PortMappings"] == [
        {"ContainerPort": 80, "HostPort": 80, "Protocol": "tcp"},
        {"ContainerPort": 443, "HostPort": 443, "Protocol": "tcp"},
    ]
    assert nginx["Environment"] == [
        {
            "Name": "SERVER_NAME",
            "Value": "example.com www.example.com api.example.com",
        },
        {"Name": "CERT_NAME", "Value": "example.com"},
    ]
    assert nginx["DependsOn"] == [{"Condition": "COMPLETE", "ContainerName": "aws-cli"}]
    assert nginx["MemoryReservation"] == 64
    assert "/docker-entrypoint.sh" in nginx["Command"][0]

    gate = get_container(task, "aws-cli")
    assert gate["Essential"] is False
    assert gate["Image"] == "amazon/aws-cli:latest"
    assert gate["EntryPoint"] == ["/bin/bash", "-c"]


def test_certbot_task(multi_domains_content):
    template = render(multi_domains_content)
    certbot = get_container(
        template["Resources"]["CertbotTaskDefinition"], "certbot"
    )
    assert certbot["Image"] == "certbot/dns-route53:v1.29.0"
    command = certbot["Command"]
    assert command[:2] == ["certonly", "--verbose"]
    assert command[command.index("--cert-name") + 1] == "example.com"
    assert command[command.index("-m") + 1] == "admin@example.com"
    assert [
        command[index + 1] for index, arg in enumerate(command) if arg == "-d"
    ] == ["example.com", "www.example.com", "api.example.com"]
    assert certbot["LogConfiguration"]["Options"]["awslogs-stream-prefix"] == "v1.29.0"


def test_removal_policies(minimal_content, multi_domains_content, existing_vpc_content):
    template = render(minimal_content)
    for title in ("CertificatesFileSystem", "ContainersLogGroup"):
        assert template["Resources"][title]["DeletionPolicy"] == "Delete"
        assert template["Resources"][title]["UpdateReplacePolicy"] == "Delete"
    assert (
        template["Resources"]["ContainersLogGroup"]["Properties"]["RetentionInDays"]
        == 731
    )

    template = render(multi_domains_content)
    for title in ("CertificatesFileSystem", "ContainersLogGroup"):
        assert template["Resources"][title]["DeletionPolicy"] == "Retain"
        assert template["Resources"][title]["UpdateReplacePolicy"] == "Retain"

    template = render(existing_vpc_content)
    file_system = template["Resources"]["CertificatesFileSystem"]
    assert file_system["DeletionPolicy"] == "RetainExceptOnCreate"
    assert file_system["UpdateReplacePolicy"] == "Retain"


def test_new_vpc(minimal_content):
    template = render(minimal_content)
    assert len(resources_of_type(template, "AWS::EC2::VPC")) == 1
    assert len(resources_of_type(template, "AWS::EC2::Subnet")) == 2
    assert not resources_of_type(template, "AWS::EC2::NatGateway")
    assert len(resources_of_type(template, "AWS::EFS::MountTarget")) == 2
    host_sg = template["Resources"]["HostSg"]["Properties"]
    assert sorted(
        (rule.get("CidrIp", rule.get("CidrIpv6")), rule["FromPort"])
        for rule in host_sg["SecurityGroupIngress"]
    ) == [("0.0.0.0/0", 80), ("0.0.0.0/0", 443), ("::/0", 80), ("::/0", 443)]


def test_host_waits_for_internet_route(minimal_content, existing_vpc_content):
    depends_on = render(minimal_content)["Resources"]["HostAutoScalingGroup"][
        "DependsOn"
    ]
    assert sorted(depends_on) == [
        "HostInstanceIp",
        "PublicDefaultRoute",
        "PublicSubnetsRtbAssocA",
        "PublicSubnetsRtbAssocB",
    ]
    group = render(existing_vpc_content)["Resources"]["HostAutoScalingGroup"]
    assert group["DependsOn"] == ["HostInstanceIp"]


def test_existing_vpc(existing_vpc_content):
    template = render(existing_vpc_content)
    assert not resources_of_type(template, "AWS::EC2::VPC")
    assert "HostSg" not in template["Resources"]
    assert template["Parameters"]["VpcId"]["Default"] == "vpc-0123456789abcdef0"
    assert (
        template["Parameters"]["HostSecurityGroupId"]["Default"]
        == "sg-0123456789abcdef0"
    )
    assert len(resources_of_type(template, "AWS::EFS::MountTarget")) == 3
    assert not resources_of_type(template, "AWS::Logs::LogGroup")

    launch_data = template["Resources"]["HostLaunchTemplate"]["Properties"][
        "LaunchTemplateData"
    ]
    assert launch_data["InstanceMarketOptions"]["MarketType"] == "spot"
    assert launch_data["InstanceMarketOptions"]["SpotOptions"]["MaxPrice"] == "0.0050"
    assert launch_data["NetworkInterfaces"][0]["Groups"] == [
        {"Ref": "HostSecurityGroupId"}
    ]

    nginx = get_container(template["Resources"]["ServerTaskDefinition"], "nginx")
    assert nginx["DependsOn"] == [{"Condition": "SUCCESS", "ContainerName": "aws-cli"}]
    assert (
        nginx["LogConfiguration"]["Options"]["awslogs-group"]
        == "/existing/easy-cerver"
    )


def test_custom_server(custom_server_content):
    template = render(custom_server_content)
    task = template["Resources"]["ServerTaskDefinition"]["Properties"]
    assert task["Family"] == "my-app"
    assert [container["Name"] for container in task["ContainerDefinitions"]] == [
        "metrics-agent",
        "app",
        "aws-cli",
    ]
    assert "nginx" not in [container["Name"] for container in task["ContainerDefinitions"]]
    app = get_container(template["Resources"]["ServerTaskDefinition"], "app")
    assert app["MountPoints"][0]["ReadOnly"] is True
    assert app["DependsOn"] == [{"Condition": "COMPLETE", "ContainerName": "aws-cli"}]
    assert app["LogConfiguration"]["Options"]["awslogs-stream-prefix"] == "app"
    agent = get_container(template["Resources"]["ServerTaskDefinition"], "metrics-agent")
    assert "MountPoints" not in agent
    gate = get_container(template["Resources"]["ServerTaskDefinition"], "aws-cli")
    assert gate["Image"] == "amazon/aws-cli:2.7.30"
    assert task["TaskRoleArn"] == {"Fn::GetAtt": ["ServerTaskRole", "Arn"]}
    assert task["Volumes"][0]["Name"] == "certVolume"


def test_service(minimal_content):
    template = render(minimal_content)
    service = template["Resources"]["ServerService"]
    assert "HostAutoScalingGroup" in service["DependsOn"]
    properties = service["Properties"]
    assert properties["DesiredCount"] == 1
    assert properties["EnableExecuteCommand"] is True
    assert properties["DeploymentConfiguration"] == {
        "DeploymentCircuitBreaker": {"Enable": True, "Rollback": True},
        "MaximumPercent": 100,
        "MinimumHealthyPercent": 0,
    }


def test_outputs(minimal_content):
    template = render(minimal_content)
    assert template["Outputs"]["HostInstanceIpAddress"]["Value"] == {
        "Ref": "HostInstanceIp"
    }
    assert "Export" in template["Outputs"]["EcsClusterArn"]
    assert template["Outputs"]["ContainersLogGroupName"]["Value"] == {
        "Ref": "ContainersLogGroup"
    }


def test_eip_tag_matches_user_data(minimal_content):
    template = render(minimal_content)
    eip = template["Resources"]["HostInstanceIp"]["Properties"]
    assert eip["Tags"] == [
        {"Key": "Name", "Value": {"Fn::Sub": "${AWS::StackName}-HostInstanceIp"}}
    ]
    user_data = json.dumps(
        template["Resources"]["HostLaunchTemplate"]["Properties"][
            "LaunchTemplateData"
        ]["UserData"]
    )
    assert "Name=tag:Name,Values=${AWS::StackName}-HostInstanceIp" in user_data
    assert "associate-address" in user_data


def test_imds_block_survives_reboot(minimal_content):
    lines = render(minimal_content)["Resources"]["HostLaunchTemplate"]["Properties"][
        "LaunchTemplateData"
    ]["UserData"]["Fn::Base64"]["Fn::Join"][1]
    block = lines.index(
        "iptables --insert FORWARD 1 --in-interface docker+"
        " --destination 169.254.169.254/32 --jump DROP"
    )
    assert lines[block + 1 : block + 4] == [
        "yum install -y iptables-services",
        "iptables-save > /etc/sysconfig/iptables",
        "systemctl enable --now iptables",
    ]
    assert "service iptables save" not in lines
