#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Module to handle the App (root of the tree), the Stacks and their templates.
Everything is kept in memory until synth renders the templates into files.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_patterns.common.settings import PatternsSettings

from troposphere import AWSObject, Export, Output, Parameter, Template

from ecs_patterns.common import NONALPHANUM
from ecs_patterns.common.construct import Construct
from ecs_patterns.common.files import FileArtifact
from ecs_patterns.common.logging import LOG


class Stack(Construct):
    """
    Class to define a CFN Stack and keep track of its template

    :ivar troposphere.Template template: the template the resources of the stack are added to
    """

    is_stack = True

    def __init__(
        self, scope: Construct | None, construct_id: str, description: str = None
    ):
        super().__init__(scope, construct_id)
        self.stack_name = NONALPHANUM.sub("-", construct_id).strip("-")
        self.template = Template(
            Description=description
            if description
            else f"ECS Patterns stack {self.stack_name}"
        )
        self.template.set_version()

    @staticmethod
    def of(construct: Construct) -> Stack:
        return construct.stack

    def add_resource(self, resource: AWSObject) -> AWSObject:
        if resource.title in self.template.resources:
            raise ValueError(
                f"{self.stack_name} - Resource {resource.title} is already defined"
            )
        return self.template.add_resource(resource)

    def add_parameter(self, parameter: Parameter) -> Parameter:
        """
        Adds the parameter to the template, unless one with the same title is already there
        """
        if parameter.title in self.template.parameters:
            return self.template.parameters[parameter.title]
        return self.template.add_parameter(parameter)

    def add_output(self, output: Output) -> Output:
        if output.title in self.template.outputs:
            raise ValueError(
                f"{self.stack_name} - Output {output.title} is already defined"
            )
        return self.template.add_output(output)

    def validate_constructs(self) -> list:
        """
        Runs the ``validate`` method of every construct of the stack that has one.

        :return: the list of error messages
        :rtype: list[str]
        """
        errors = []
        for construct in self.find_all():
            if construct is self or not hasattr(construct, "validate"):
                continue
            for error in construct.validate():
                errors.append(f"{construct.path} - {error}")
        return errors

    def synthesize(self) -> Template:
        """
        Validates the constructs and returns the template, ready to render

        :raises: ValueError if any construct failed validation
        """
        errors = self.validate_constructs()
        if errors:
            for error in errors:
                LOG.error(error)
            raise ValueError(
                f"Stack {self.stack_name} failed validation with {len(errors)} error(s)",
                errors,
            )
        return self.template

    def render(self, file_format: str = "json") -> str:
        template = self.synthesize()
        if file_format in ["yaml", "yml"]:
            return template.to_yaml()
        return template.to_json()


class App(Construct):
    """
    Root of the constructs tree. Holds the stacks.
    """

    def __init__(self):
        super().__init__(None, "")

    @property
    def stacks(self) -> list:
        return [construct for construct in self.find_all() if construct.is_stack]

    def synth(self, settings: PatternsSettings) -> list:
        """
        Renders and writes to disk the template of every stack

        :param ecs_patterns.common.settings.PatternsSettings settings:
        :return: the files artifacts
        :rtype: list[FileArtifact]
        """
        artifacts = []
        for stack in self.stacks:
            template = stack.synthesize()
            artifact = FileArtifact(stack.stack_name, settings, template=template)
            artifact.define_body()
            artifact.write(settings)
            if settings.validate:
                artifact.validate(settings)
            artifacts.append(artifact)
        return artifacts


class CfnOutput(Construct):
    """
    Output of the stack, identified by the path of the construct
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        value,
        description: str = None,
        export_name: str = None,
    ):
        super().__init__(scope, construct_id)
        self.value = value
        output_props = {"Value": value}
        if description:
            output_props["Description"] = description
        if export_name:
            output_props["Export"] = Export(export_name)
        self.output = self.stack.add_output(Output(self.logical_id(), **output_props))
