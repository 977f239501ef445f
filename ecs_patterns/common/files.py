#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Functions to manage a rendered template and write it to disk
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_patterns.common.settings import PatternsSettings

from os import makedirs, path

from botocore.exceptions import ClientError
from troposphere import Template

from ecs_patterns.common.logging import LOG

JSON_MIME = "application/json"
YAML_MIME = "application/x-yaml"

MAX_TEMPLATE_BODY_SIZE = 51200


class FileArtifact(object):
    """
    Class to handle the templates files artifacts.
    It renders the template and writes it to the local filesystem.
    It also handles CloudFormation templates validation.

    :cvar str body: The rendered template
    :cvar troposphere.Template template: the CFN template
    :cvar str file_name: the base name of the file
    :cvar str mime: MIME-type of the file
    :cvar str file_path: Output file path for the FileArtifact
    """

    mime = "text/plain"
    file_path = None

    def __init__(
        self,
        file_name: str,
        settings: PatternsSettings,
        file_format: str = None,
        template: Template = None,
    ):
        """
        Init method for FileArtifact

        :param file_name: Name of the file. Mandatory
        :param template: the template to render
        """
        self.file_name = file_name
        self.body = None
        if file_format is None:
            file_format = settings.format
        if not isinstance(template, Template):
            raise TypeError("template must be of type", Template, "got", type(template))
        self.template = template
        if file_format is not None and not isinstance(file_format, str):
            raise TypeError("format is of type", type(file_format), "expected", str)
        self.define_file_specs(file_name, file_format, settings)
        self.file_path = path.join(settings.output_dir, self.file_name)

    def __repr__(self):
        return self.file_path

    def write(self, settings: PatternsSettings) -> None:
        """
        Method to write the files to local filesystem based on parameters (directory name etc.)
        """
        if self.body is None:
            self.define_body()
        makedirs(settings.output_dir, exist_ok=True)
        with open(self.file_path, "w") as template_fd:
            template_fd.write(self.body)
        LOG.info(
            f"Template {self.file_name} written successfully at {path.abspath(self.file_path)}"
        )

    def validate(self, settings: PatternsSettings) -> None:
        """
        Method to validate the CloudFormation template via the TemplateBody
        """
        if self.body is None:
            self.define_body()
        if len(self.body) >= MAX_TEMPLATE_BODY_SIZE:
            LOG.warning(
                f"Template body for {self.file_name} is too big for local validation. Skipping."
            )
            return
        try:
            settings.session.client("cloudformation").validate_template(
                TemplateBody=self.body
            )
            LOG.info(f"Template {self.file_name} was validated successfully by CFN")
        except ClientError as error:
            LOG.error(error)
            LOG.error(f"Failed validation template available at {self.file_path}")
            raise

    def define_body(self) -> None:
        """
        Method to define the body of the file artifact from the template
        """
        if self.mime == YAML_MIME:
            self.body = self.template.to_yaml()
        else:
            self.body = self.template.to_json()

    def define_file_specs(self, file_name, file_format, settings) -> None:
        """
        Method to set the file name extension and MIME type from the format

        :param file_name: name of the file
        :param file_format: format to use for the file.
        :param settings: The settings for execution
        """
        if file_format is not None and file_format in settings.allowed_formats:
            self.file_name = f"{file_name}.{file_format}"

        if self.file_name.endswith(".json"):
            self.mime = JSON_MIME
        elif self.file_name.endswith(".yml") or self.file_name.endswith(".yaml"):
            self.mime = YAML_MIME
        else:
            self.mime = JSON_MIME
            self.file_name = f"{self.file_name}.template"
