###############################################################
# Copyright 2025 Lawrence Livermore National Security, LLC
# (c.f. AUTHORS, NOTICE.LLNS, COPYING)
#
# This file is part of the Flux resource manager framework.
# For details, see https://github.com/flux-framework.
#
# SPDX-License-Identifier: LGPL-3.0
###############################################################

import json
import sys

import yaml

from kubecreate.errors import UsageError
from kubecreate.kube import to_dict

OUTPUT_FORMATS = ("name", "json", "yaml")


class NamePrinter:
    """Print ``<resource>.<group>/<name> <operation>``"""

    def __init__(self, resource, operation):
        self.resource = resource
        self.operation = operation

    def print_obj(self, obj, out):
        print(f"{self.resource}/{obj.metadata.name} {self.operation}", file=out)


class JSONPrinter:
    def print_obj(self, obj, out):
        print(json.dumps(to_dict(obj), indent=4), file=out)


class YAMLPrinter:
    def print_obj(self, obj, out):
        yaml.safe_dump(to_dict(obj), out, default_flow_style=False)


class PrintFlags:
    """
    Output options shared by create commands.

    Args:
        operation (str): past tense verb printed by the name printer,
            e.g. "created"
    """

    def __init__(self, operation):
        self.operation = operation
        self.template = "%s"
        self.output = ""

    @staticmethod
    def add_arguments(parser):
        parser.add_argument(
            "-o",
            "--output",
            type=str,
            metavar="FORMAT",
            help="Output format. One of: " + ", ".join(OUTPUT_FORMATS),
        )

    def complete(self, template):
        """Wrap the operation in template, e.g. "%s (dry run)" """
        self.template = template

    def to_printer(self, resource):
        output = self.output or "name"
        if output == "name":
            return NamePrinter(resource, self.template % self.operation)
        if output == "json":
            return JSONPrinter()
        if output == "yaml":
            return YAMLPrinter()
        raise UsageError(
            f"--output: unknown format '{output}', "
            + "expected one of: "
            + ", ".join(OUTPUT_FORMATS)
        )

    def print_func(self, resource, out=None):
        """Return a function printing one object to out (default stdout)"""
        printer = self.to_printer(resource)

        def print_obj(obj):
            printer.print_obj(obj, out or sys.stdout)

        return print_obj
