##############################################################
# Copyright 2025 Lawrence Livermore National Security, LLC
# (c.f. AUTHORS, NOTICE.LLNS, COPYING)
#
# This file is part of the Flux resource manager framework.
# For details, see https://github.com/flux-framework.
#
# SPDX-License-Identifier: LGPL-3.0
##############################################################

# Shared logic for all "create" subcommands. Each subcommand supplies
# a builder describing its resource kind, the lifecycle below drives it.
#
# A builder provides:
#   name, aliases, usage, description, examples  (command registration)
#   resource          e.g. "cronjob.batch" (name printer)
#   kind_name         e.g. "cronjob" (error messages)
#   schema            bundled schema name, see kubecreate.schema
#   add_arguments(parser)
#   complete(options) apply kind specific defaults
#   validate(options) raise ValidationError on missing input
#   build(options)    return a kubernetes.client model object
#   client(api_client) return a kubecreate.kube.ResourceClient

import argparse
import enum
import json
import logging
import re

from kubecreate import schema, util
from kubecreate.errors import SubmissionError, UsageError
from kubecreate.kube import TRANSPORT_ERRORS, api_error_message, to_dict
from kubecreate.printers import PrintFlags

LOGGER = logging.getLogger("kubecreate")

LAST_APPLIED_ANNOTATION = "kubectl.kubernetes.io/last-applied-configuration"

DNS1123_SUBDOMAIN = re.compile(
    r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*$"
)
DNS1123_SUBDOMAIN_MAX = 253


def name_from_command_args(args):
    """
    Return the object name from positional args.

    :raises UsageError: NAME is missing or not a valid DNS-1123 subdomain
    """
    if not args:
        raise UsageError("NAME is required")
    name = args[0]
    if len(name) > DNS1123_SUBDOMAIN_MAX or not DNS1123_SUBDOMAIN.fullmatch(name):
        raise UsageError(
            f"invalid NAME '{name}': must consist of lower case alphanumeric "
            + "characters, '-' or '.', and must start and end with an "
            + "alphanumeric character"
        )
    return name


def set_last_applied(obj):
    """Record obj's own configuration in its last-applied annotation"""
    data = json.dumps(to_dict(obj), separators=(",", ":"))
    annotations = dict(obj.metadata.annotations or {})
    annotations[LAST_APPLIED_ANNOTATION] = data
    obj.metadata.annotations = annotations
    return obj


class State(enum.Enum):
    UNCONFIGURED = "Unconfigured"
    COMPLETED = "Completed"
    VALIDATED = "Validated"
    EXECUTED = "Executed"
    ABORTED = "Aborted"


class CommandOptions:
    """
    Options for one create invocation, filled in by complete(), checked
    by validate() and consumed by run(). Phases must be called exactly
    once and in that order. A phase that raises leaves the options
    Aborted with the exception in error, and no phase may run after it.
    """

    def __init__(
        self,
        builder,
        image="",
        schedule="",
        restart="",
        output="",
        dry_run=False,
        save_config=False,
        validate_schema=True,
    ):
        self.builder = builder
        self.name = None
        self.image = image or ""
        self.schedule = schedule or ""
        self.command = []
        self.restart = restart or ""
        self.namespace = None
        self.dry_run = dry_run
        self.save_config = save_config
        self.validate_schema = validate_schema
        self.print_flags = PrintFlags("created")
        self.print_flags.output = output or ""
        self.client = None
        self.print_obj = None
        self.state = State.UNCONFIGURED
        self.error = None

    @classmethod
    def from_args(cls, builder, args, conf=None):
        conf = conf or {}
        output = getattr(args, "output", None)
        validate_schema = getattr(args, "validate", None)
        return cls(
            builder,
            image=getattr(args, "image", None),
            schedule=getattr(args, "schedule", None),
            restart=getattr(args, "restart", None),
            output=output if output is not None else conf.get("output"),
            dry_run=getattr(args, "dry_run", False),
            save_config=getattr(args, "save_config", False),
            validate_schema=validate_schema if validate_schema is not None else True,
        )

    def _require(self, phase, expected):
        if self.state is State.ABORTED:
            raise RuntimeError(f"{phase}: options were aborted: {self.error}")
        if self.state is not expected:
            raise RuntimeError(
                f"{phase}: options are {self.state.value}, "
                + f"expected {expected.value}"
            )

    def _advance(self, new):
        LOGGER.debug("%s/%s: %s", self.builder.kind_name, self.name, new.value)
        self.state = new

    def _phase(self, phase, expected, body, *args):
        self._require(phase, expected)
        try:
            return body(*args)
        except Exception as exc:
            self.error = exc
            self._advance(State.ABORTED)
            raise

    def complete(self, factory, args):
        """
        Derive name and command from positional args, apply defaults and
        resolve the client, namespace and output function from factory.
        """
        self._phase("complete", State.UNCONFIGURED, self._complete, factory, args)

    def _complete(self, factory, args):
        self.name = name_from_command_args(args)
        if len(args) > 1:
            self.command = list(args[1:])
        self.builder.complete(self)

        #  Usage errors (e.g. unknown --output) come before any cluster access
        if self.dry_run:
            self.print_flags.complete("%s (dry run)")
        self.print_obj = self.print_flags.print_func(self.builder.resource)

        self.client = self.builder.client(factory.api_client())
        self.namespace = factory.namespace()

        self._advance(State.COMPLETED)

    def validate(self):
        self._phase("validate", State.COMPLETED, self._validate)

    def _validate(self):
        self.builder.validate(self)
        self._advance(State.VALIDATED)

    def run(self):
        """
        Build the object, submit it unless dry_run, then print it.
        Returns the result of the output function.
        """
        return self._phase("run", State.VALIDATED, self._run)

    def _run(self):
        obj = self.builder.build(self)
        if self.save_config:
            set_last_applied(obj)
        if self.validate_schema:
            schema.validate(self.builder.schema, to_dict(obj))

        if not self.dry_run:
            try:
                obj = self.client.create(obj, self.namespace)
            except TRANSPORT_ERRORS as exc:
                raise SubmissionError(
                    f"failed to create {self.builder.kind_name}: "
                    + api_error_message(exc)
                ) from exc

        result = self.print_obj(obj)
        self._advance(State.EXECUTED)
        return result


def run_lifecycle(options, factory, args):
    """
    Drive options through complete, validate and run. The first failure
    propagates and no later phase is attempted.
    """
    options.complete(factory, args)
    options.validate()
    return options.run()


class CreateCommand:
    """
    CreateCommand registers one create subcommand for a builder and runs
    it through the shared lifecycle.
    """

    def __init__(self, builder):
        self.builder = builder
        self.parser = None

    def add_parser(self, subparsers):
        self.parser = subparsers.add_parser(
            self.builder.name,
            aliases=list(self.builder.aliases),
            usage=self.builder.usage,
            help=self.builder.description,
            description=self.builder.description,
            epilog=self.builder.examples,
            formatter_class=util.help_formatter(raw_description=True),
        )
        self.add_arguments(self.parser)
        self.parser.set_defaults(func=self.main, kind=self.builder.name)
        return self.parser

    def add_arguments(self, parser):
        parser.add_argument(
            "args",
            nargs="*",
            metavar="NAME",
            help="Name of the object to create",
        )
        #  Also accepted after the subcommand, SUPPRESS keeps the
        #   subparser from overwriting a value given before it
        parser.add_argument(
            "-n",
            "--namespace",
            type=str,
            metavar="NAMESPACE",
            default=argparse.SUPPRESS,
            help="Namespace to create the object in",
        )
        PrintFlags.add_arguments(parser)
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Don't actually create the object, just print it",
        )
        parser.add_argument(
            "--save-config",
            action="store_true",
            help="Save the configuration of the object in its annotation",
        )
        parser.add_argument(
            "--validate",
            action=util.YesNoAction,
            default=True,
            help="Validate the object against its schema before sending it "
            + "(default: yes)",
        )
        self.builder.add_arguments(parser)

    def main(self, args, factory, conf=None):
        options = CommandOptions.from_args(self.builder, args, conf)
        positionals = list(args.args) + list(getattr(args, "command", None) or [])
        return run_lifecycle(options, factory, positionals)


def add_command_arguments(parser):
    """Arguments shared by builders that run a container"""
    parser.add_argument(
        "--image",
        type=str,
        metavar="IMAGE",
        help="Image name to run",
    )
