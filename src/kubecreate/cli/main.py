##############################################################
# Copyright 2025 Lawrence Livermore National Security, LLC
# (c.f. AUTHORS, NOTICE.LLNS, COPYING)
#
# This file is part of the Flux resource manager framework.
# For details, see https://github.com/flux-framework.
#
# SPDX-License-Identifier: LGPL-3.0
##############################################################

import argparse
import logging
import sys

from kubecreate import util
from kubecreate.cli.base import CreateCommand
from kubecreate.cli.cronjob import CronJobBuilder
from kubecreate.cli.job import JobBuilder
from kubecreate.kube import KubeFactory

LOGGER = logging.getLogger("kubecreate")

BUILDERS = (CronJobBuilder, JobBuilder)


def create_parser():
    parser = argparse.ArgumentParser(
        prog="kubecreate", formatter_class=util.help_formatter()
    )
    parser.add_argument(
        "--kubeconfig",
        type=str,
        metavar="FILE",
        help="Path to the kubeconfig file to use",
    )
    parser.add_argument(
        "--context",
        type=str,
        metavar="NAME",
        help="The kubeconfig context to use",
    )
    parser.add_argument(
        "-n",
        "--namespace",
        type=str,
        metavar="NAMESPACE",
        help="Namespace to create the object in",
    )
    subparsers = parser.add_subparsers(
        title="supported subcommands", description="", dest="subcommand"
    )
    subparsers.required = True

    for builder in BUILDERS:
        CreateCommand(builder()).add_parser(subparsers)
    return parser


def run(argv=None):
    if argv is None:
        argv = sys.argv[1:]

    #  Everything after the first "--" is the container command line
    argv, command = util.split_at_dash(argv)

    args = create_parser().parse_args(argv)
    args.command = command or []

    conf = util.UtilConfig("kubecreate", subcommand=args.kind).load()
    factory = KubeFactory.from_args(args, conf)
    return args.func(args, factory, conf)


def main():
    util.CLIMain(LOGGER)(run)


if __name__ == "__main__":
    main()
