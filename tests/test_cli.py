"""Tests for the iamboot command line interface."""

import json
import logging

import pytest
import yaml

from iamboot.aws import constants as c
from iamboot.base.logger import set_level
from iamboot.cli import main


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "bootstrap-config.yaml"
    path.write_text(
        "apiVersion: bootstrap.aws.infrastructure.cluster.x-k8s.io/v1alpha1\n"
        "kind: AWSIAMConfiguration\n"
        "spec:\n"
        "  namePrefix: test-\n"
        "  bootstrapUser:\n"
        "    enable: true\n"
        "  controlPlane:\n"
        "    enableCSIPolicy: true\n"
        "  eks:\n"
        "    disable: true\n"
    )
    return path


@pytest.fixture
def restore_log_level():
    yield
    set_level(logging.WARNING)


class TestPrintCloudFormationTemplate:
    def test_defaults_yaml(self, capsys):
        main(["print-cloudformation-template"])
        template = yaml.safe_load(capsys.readouterr().out)
        assert template["AWSTemplateFormatVersion"] == "2010-09-09"
        assert c.AWS_IAM_ROLE_EKS_CONTROL_PLANE in template["Resources"]
        assert c.AWS_IAM_USER_BOOTSTRAPPER not in template["Resources"]

    def test_config_file_json(self, capsys, config_file):
        main(["print-cloudformation-template", "--config", str(config_file), "--format", "json"])
        resources = json.loads(capsys.readouterr().out)["Resources"]
        assert c.AWS_IAM_USER_BOOTSTRAPPER in resources
        assert c.CSI_POLICY in resources
        assert c.AWS_IAM_ROLE_EKS_CONTROL_PLANE not in resources
        assert resources[c.AWS_IAM_ROLE_NODES]["Properties"]["RoleName"] == (
            "test-nodes.cluster-api-provider-aws.sigs.k8s.io"
        )

    def test_missing_config(self, capsys, tmp_path):
        with pytest.raises(SystemExit) as exc:
            main(["print-cloudformation-template", "--config", str(tmp_path / "nope.yaml")])
        assert exc.value.code == 1
        assert "Unable to read configuration file" in capsys.readouterr().err

    def test_invalid_config(self, capsys, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("spec:\n  nameSuffix: null\n")
        with pytest.raises(SystemExit) as exc:
            main(["print-cloudformation-template", "--config", str(path)])
        assert exc.value.code == 1
        assert "Invalid configuration" in capsys.readouterr().err


class TestPrintConfig:
    def test_defaults(self, capsys):
        main(["print-config"])
        doc = yaml.safe_load(capsys.readouterr().out)
        assert doc["kind"] == "AWSIAMConfiguration"
        assert doc["spec"]["nameSuffix"] == ".cluster-api-provider-aws.sigs.k8s.io"
        assert doc["spec"]["bootstrapUser"]["enable"] is False
        assert doc["spec"]["controlPlane"]["enableCSIPolicy"] is False

    def test_merges_file(self, capsys, config_file):
        main(["print-config", "-c", str(config_file)])
        doc = yaml.safe_load(capsys.readouterr().out)
        assert doc["spec"]["namePrefix"] == "test-"
        assert doc["spec"]["eks"]["disable"] is True
        assert doc["spec"]["nodes"]["disableCloudProviderPolicy"] is False


class TestPrintPolicy:
    def test_known_document(self, capsys):
        main(["print-policy", "--document", c.CSI_POLICY])
        doc = json.loads(capsys.readouterr().out)
        assert doc["Version"] == "2012-10-17"
        assert "ec2:CreateVolume" in doc["Statement"][0]["Action"]

    def test_controllers_uses_config(self, capsys, config_file):
        main(["print-policy", "-c", str(config_file), "-d", c.CONTROLLERS_POLICY])
        doc = json.loads(capsys.readouterr().out)
        resources = [r for s in doc["Statement"] for r in s.get("Resource", [])]
        assert "arn:aws:iam::*:role/test-*.cluster-api-provider-aws.sigs.k8s.io" in resources
        actions = [a for s in doc["Statement"] for a in s["Action"]]
        assert "eks:CreateCluster" not in actions

    def test_unknown_document(self):
        with pytest.raises(SystemExit) as exc:
            main(["print-policy", "--document", "NotAPolicy"])
        assert exc.value.code == 2

    def test_command_required(self):
        with pytest.raises(SystemExit) as exc:
            main([])
        assert exc.value.code == 2


class TestSharedOptions:
    def test_config_after_sub_command(self, capsys, config_file):
        main(["print-cloudformation-template", "--config", str(config_file)])
        resources = yaml.safe_load(capsys.readouterr().out)["Resources"]
        assert c.AWS_IAM_USER_BOOTSTRAPPER in resources

    def test_config_before_sub_command_rejected(self, config_file):
        with pytest.raises(SystemExit) as exc:
            main(["--config", str(config_file), "print-config"])
        assert exc.value.code == 2

    def test_verbose_logs_to_stderr(self, capsys, restore_log_level):
        main(["print-cloudformation-template", "-vv"])
        captured = capsys.readouterr()
        assert '"resource": "AWSIAMRoleNodes"' in captured.err
        assert "Rendered 10 resources" in captured.err
        assert "Rendered" not in captured.out
