# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

from pytest import raises
from troposphere import GetAtt, Ref
from troposphere.ecs import Cluster

from easy_cerver.common.outputs import CerverOutput, validate


def test_output_validation():
    cluster = Cluster("EcsCluster")
    with raises(ValueError):
        validate((1, 2))
    validate(("Arn", "Arn", GetAtt(cluster, "Arn")))
    with raises(TypeError):
        validate(("Arn", "Arn", 40.1))
    with raises(TypeError):
        validate(("Arn", 123, Ref(cluster)))
    with raises(TypeError):
        validate((1, "Arn", Ref(cluster)))


def test_cerver_output():
    cluster = Cluster("EcsCluster")
    with raises(TypeError):
        CerverOutput(123, [("Name", "Name", Ref(cluster))])
    with raises(TypeError):
        CerverOutput(cluster, [["Name", "Name", Ref(cluster)]])
    outputs = CerverOutput(
        cluster,
        [("Name", "Name", Ref(cluster)), ("Arn", "Arn", GetAtt(cluster, "Arn"))],
        export=True,
    ).outputs
    assert [output.title for output in outputs] == ["EcsClusterName", "EcsClusterArn"]
    assert outputs[1].to_dict()["Export"] == {
        "Name": {"Fn::Sub": "${AWS::StackName}::EcsCluster::Arn"}
    }
    outputs = CerverOutput("ServerService", [("Name", "Name", "nginx")]).outputs
    assert "Export" not in outputs[0].to_dict()
