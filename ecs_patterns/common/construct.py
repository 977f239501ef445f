#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Module for the Construct class, the node of the resources tree.

Each construct has an ID unique among its siblings. The path of IDs from the stack down to a construct
is what gives its CloudFormation resources their logical IDs, so the same tree always renders
the same template.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_patterns.common.stack import Stack

from troposphere import AWSObject

from ecs_patterns.common import make_logical_id, metadata_key, version, version_key
from ecs_patterns.common.logging import LOG

PATH_SEP = "/"


class Construct(object):
    """
    Class to represent a node in the resources tree.

    :ivar str node_id: ID of the construct, unique within its scope
    :ivar Construct scope: the parent construct. None only for the root of the tree.
    :ivar dict children: the children constructs, in order of creation
    """

    is_stack = False

    def __init__(self, scope: Construct | None, construct_id: str):
        if scope is not None:
            if not isinstance(scope, Construct):
                raise TypeError("scope must be", Construct, "Got", type(scope))
            if not isinstance(construct_id, str) or not construct_id:
                raise ValueError("Only the root construct can have an empty ID")
            if PATH_SEP in construct_id:
                raise ValueError(
                    f"Construct ID {construct_id} cannot contain {PATH_SEP}"
                )
        self.node_id = construct_id
        self.scope = scope
        self.children = {}
        if scope is not None:
            scope.add_child(self)

    def __repr__(self):
        return self.path or "<root>"

    def add_child(self, child: Construct) -> None:
        if child.node_id in self.children:
            raise ValueError(
                f"There is already a Construct with name '{child.node_id}' in {self}"
            )
        self.children[child.node_id] = child

    def try_find_child(self, construct_id: str) -> Construct | None:
        """
        Returns the direct child with the given ID, None if there is none
        """
        return self.children.get(construct_id)

    def find_all(self):
        """
        Iterates over this construct and all its children, depth first
        """
        yield self
        for child in self.children.values():
            yield from child.find_all()

    @property
    def scopes(self) -> list:
        """
        List of constructs from the root to this one, included
        """
        scopes = []
        node = self
        while node is not None:
            scopes.insert(0, node)
            node = node.scope
        return scopes

    @property
    def path(self) -> str:
        return PATH_SEP.join(node.node_id for node in self.scopes if node.node_id)

    @property
    def stack(self) -> Stack:
        """
        The closest Stack this construct belongs to
        """
        node = self
        while node is not None:
            if node.is_stack:
                return node
            node = node.scope
        raise LookupError(f"{self} is not defined within a Stack")

    def stack_components(self, child: str = None) -> list:
        """
        The IDs from the stack (excluded) down to this construct, plus child if set
        """
        stack = self.stack
        components = []
        for node in reversed(self.scopes):
            if node is stack:
                break
            components.insert(0, node.node_id)
        if child:
            components.append(child)
        return components

    def logical_id(self, child: str = None) -> str:
        """
        Logical ID to use in the template for this construct, or for one of its resources if child is set.
        """
        return make_logical_id(self.stack_components(child))

    def add_cfn_resource(
        self, resource_class, child: str = "Resource", **props
    ) -> AWSObject:
        """
        Creates the troposphere object owned by this construct and adds it to the stack template.

        :param resource_class: the troposphere AWSObject class to create
        :param str child: ID of the resource within the construct
        :param props: properties and attributes of the resource
        :return: the resource, as added to the template
        """
        title = self.logical_id(child)
        path = PATH_SEP.join(part for part in (self.path, child) if part)
        props["Metadata"] = {metadata_key: path, version_key: version}
        resource = resource_class(title, **props)
        LOG.debug(f"{path} - Adding {resource.resource_type} {title}")
        return self.stack.add_resource(resource)


def add_dependency(resource: AWSObject, *targets) -> None:
    """
    Adds the targets to the DependsOn of the resource, once only.

    :param troposphere.AWSObject resource:
    :param targets: the resources (or their titles) the resource depends on
    """
    depends_on = getattr(resource, "DependsOn", [])
    if isinstance(depends_on, str):
        depends_on = [depends_on]
    depends_on = list(depends_on)
    for target in targets:
        title = target if isinstance(target, str) else target.title
        if title == resource.title or title in depends_on:
            continue
        depends_on.append(title)
    if depends_on:
        resource.DependsOn = depends_on
