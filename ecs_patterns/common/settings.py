#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Module for the PatternsSettings class
"""

from __future__ import annotations

from copy import deepcopy
from datetime import datetime as dt
from json import loads
from os import environ, path
from re import compile

import boto3
import jsonschema
import yaml
from compose_x_common.compose_x_common import keyisset, set_else_none
from importlib_resources import files as pkg_files

from ecs_patterns.common.logging import LOG

ENV_VAR_RE = compile(r"\$\{(?P<name>[a-zA-Z_][a-zA-Z0-9_]*)(?::-(?P<default>[^}]*))?}")


def interpolate_env_vars(content):
    """
    Replaces ${VAR} and ${VAR:-default} in all the strings of the content with the environment values.

    :param content: the loaded definition
    :raises: KeyError if a variable is not set and has no default
    """
    if isinstance(content, dict):
        return {key: interpolate_env_vars(value) for key, value in content.items()}
    elif isinstance(content, list):
        return [interpolate_env_vars(value) for value in content]
    elif isinstance(content, str):

        def replace(match):
            name = match.group("name")
            if name in environ:
                return environ[name]
            if match.group("default") is not None:
                return match.group("default")
            raise KeyError(f"Environment variable {name} is not set and has no default")

        return ENV_VAR_RE.sub(replace, content)
    return content


def merge_definitions(original: dict, override: dict) -> dict:
    """
    Deep merges override into a copy of original. Lists and values of override replace the original ones.

    :rtype: dict
    """
    merged = deepcopy(original)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_definitions(merged[key], value)
        else:
            merged[key] = deepcopy(value)
    return merged


def load_definition_files(files: list) -> dict:
    """
    Loads the YAML definition files, in order, merging each into the previous ones

    :param list[str] files:
    :rtype: dict
    """
    content = {}
    for file_path in files:
        if not path.exists(file_path):
            raise FileNotFoundError(f"Definition file {file_path} does not exist")
        with open(file_path, "r") as file_fd:
            file_content = yaml.load(file_fd.read(), Loader=yaml.SafeLoader)
        if not isinstance(file_content, dict):
            raise TypeError(
                f"Definition file {file_path} must be a mapping. Got",
                type(file_content),
            )
        content = merge_definitions(content, file_content)
    return interpolate_env_vars(content)


def validate_definition(content: dict) -> None:
    """
    Validates the definition against the JSON schema shipped with the package

    :raises: jsonschema.exceptions.ValidationError
    """
    source = pkg_files("ecs_patterns").joinpath("specs/ecs-patterns.spec.json")
    LOG.info(f"Validating against input schema {source}")
    jsonschema.validate(content, loads(source.read_text()))


class PatternsSettings(object):
    """
    Class to handle the settings of an execution: the definition, the output and the AWS session.

    :ivar dict definition: the merged and validated definition content
    :ivar boto3.session.Session session:
    """

    name_arg = "Name"
    region_arg = "RegionName"
    command_arg = "command"
    render_arg = "render"
    config_render_arg = "config"
    version_arg = "version"
    input_file_arg = "DefinitionFile"
    output_dir_arg = "OutputDirectory"
    format_arg = "TemplateFormat"
    validate_arg = "ValidateTemplate"
    default_format = "json"
    allowed_formats = ["json", "yaml"]
    default_output_dir = f"/tmp/ecs-patterns-{dt.now().strftime('%Y%m%d%H%M%S')}"

    active_commands = [
        {
            "name": render_arg,
            "help": "Generates the CloudFormation templates locally",
        },
    ]
    validation_commands = [
        {
            "name": config_render_arg,
            "help": "Merges the definition files and prints the resulting definition",
        },
    ]
    neutral_commands = [{"name": version_arg, "help": "ECS Patterns Version"}]

    def __init__(self, content: dict = None, profile_name=None, session=None, **kwargs):
        if session is not None:
            self.session = session
        elif profile_name:
            self.session = boto3.session.Session(profile_name=profile_name)
        else:
            self.session = boto3.session.Session(
                region_name=set_else_none(self.region_arg, kwargs)
            )
        self.aws_region = (
            kwargs[self.region_arg]
            if keyisset(self.region_arg, kwargs)
            else self.session.region_name
        )
        self.name = set_else_none(self.name_arg, kwargs)
        self.input_files = set_else_none(self.input_file_arg, kwargs, alt_value=[])
        self.validate = keyisset(self.validate_arg, kwargs)
        self.set_output_settings(kwargs)
        self.definition = {}
        self.set_content(content)

    def __repr__(self):
        return f"PatternsSettings({self.name}, {self.input_files})"

    def set_content(self, content: dict = None) -> None:
        """
        Loads the definition from the content given, or the files

        :param dict content:
        """
        if content is not None:
            definition = interpolate_env_vars(deepcopy(content))
        elif self.input_files:
            LOG.debug(f"Input files: {self.input_files}")
            definition = load_definition_files(self.input_files)
        else:
            return
        validate_definition(definition)
        self.definition = definition

    def set_output_settings(self, kwargs: dict) -> None:
        """
        Method to set the output settings based on kwargs
        """
        self.format = self.default_format
        if (
            keyisset(self.format_arg, kwargs)
            and kwargs[self.format_arg] in self.allowed_formats
        ):
            self.format = kwargs[self.format_arg]
        self.output_dir = (
            kwargs[self.output_dir_arg]
            if keyisset(self.output_dir_arg, kwargs)
            else self.default_output_dir
        )
