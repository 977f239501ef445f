#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

from os import path

import pytest
from jsonschema.exceptions import ValidationError

from ecs_patterns.common.settings import (
    PatternsSettings,
    interpolate_env_vars,
    load_definition_files,
    merge_definitions,
    validate_definition,
)

HERE = path.abspath(path.dirname(__file__))
SIMPLE = f"{HERE}/definitions/simple.yml"
OVERRIDE = f"{HERE}/definitions/override.yml"
INVALID = f"{HERE}/definitions/invalid.yml"


@pytest.fixture(autouse=True)
def env_setup(monkeypatch):
    monkeypatch.delenv("WEB_IMAGE", raising=False)
    monkeypatch.delenv("STAGE", raising=False)


def test_interpolate_env_vars(monkeypatch):
    monkeypatch.setenv("STAGE", "prod")
    content = {
        "Stage": "${STAGE}",
        "Images": ["${WEB_IMAGE:-nginx}", "app-${STAGE}"],
        "Count": 2,
    }
    assert interpolate_env_vars(content) == {
        "Stage": "prod",
        "Images": ["nginx", "app-prod"],
        "Count": 2,
    }
    with pytest.raises(KeyError):
        interpolate_env_vars({"Image": "${WEB_IMAGE}"})


def test_merge_definitions():
    original = {"Services": {"web": {"DesiredCount": 1, "Type": "A"}}, "List": [1, 2]}
    merged = merge_definitions(
        original, {"Services": {"web": {"DesiredCount": 2}}, "List": [3]}
    )
    assert merged == {"Services": {"web": {"DesiredCount": 2, "Type": "A"}}, "List": [3]}
    assert original["Services"]["web"]["DesiredCount"] == 1


def test_load_definition_files(monkeypatch):
    monkeypatch.setenv("STAGE", "staging")
    content = load_definition_files([SIMPLE, OVERRIDE])
    web = content["Services"]["web"]
    assert web["DesiredCount"] == 3
    assert web["Type"] == "ApplicationLoadBalancedFargateService"
    assert web["TaskImageOptions"] == {
        "Image": "nginx:latest",
        "Environment": {"PORT": 80, "STAGE": "staging"},
    }
    validate_definition(content)


def test_load_definition_files_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_definition_files([f"{HERE}/definitions/nope.yml"])
    not_a_mapping = tmp_path / "list.yml"
    not_a_mapping.write_text("- a\n- b\n")
    with pytest.raises(TypeError):
        load_definition_files([str(not_a_mapping)])


def test_invalid_definition():
    with pytest.raises(ValidationError):
        validate_definition(load_definition_files([INVALID]))
    with pytest.raises(ValidationError):
        validate_definition({"Description": "No services"})
    with pytest.raises(ValidationError):
        validate_definition(
            {
                "Vpc": {"Create": {}, "Use": {"VpcId": "vpc-123"}},
                "Services": {
                    "web": {
                        "Type": "ApplicationLoadBalancedFargateService",
                        "TaskImageOptions": {"Image": "nginx"},
                    }
                },
            }
        )


def test_settings_from_files(tmp_path):
    settings = PatternsSettings(
        DefinitionFile=[SIMPLE],
        Name="web-app",
        TemplateFormat="yaml",
        OutputDirectory=str(tmp_path),
        RegionName="eu-west-1",
    )
    assert settings.name == "web-app"
    assert settings.format == "yaml"
    assert settings.output_dir == str(tmp_path)
    assert settings.aws_region == "eu-west-1"
    assert settings.validate is False
    assert settings.definition["Description"] == "Simple web application"


def test_settings_defaults():
    settings = PatternsSettings(TemplateFormat="xml", RegionName="eu-west-1")
    assert settings.format == PatternsSettings.default_format
    assert settings.output_dir == PatternsSettings.default_output_dir
    assert settings.definition == {}
    with pytest.raises(ValidationError):
        PatternsSettings(content={"Services": {}}, RegionName="eu-west-1")
