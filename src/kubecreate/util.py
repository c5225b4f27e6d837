###############################################################
# Copyright 2025 Lawrence Livermore National Security, LLC
# (c.f. AUTHORS, NOTICE.LLNS, COPYING)
#
# This file is part of the Flux resource manager framework.
# For details, see https://github.com/flux-framework.
#
# SPDX-License-Identifier: LGPL-3.0
###############################################################

import argparse
import copy
import glob
import json
import logging
import os
import sys
import traceback
from pathlib import Path, PurePosixPath

import yaml

# tomllib added to standard library in Python 3.11
try:
    import tomllib  # novermin
except ModuleNotFoundError:
    import tomli as tomllib

__all__ = [
    "CLIMain",
    "YesNoAction",
    "UtilConfig",
    "dict_merge",
    "help_formatter",
    "split_at_dash",
]


def help_formatter(argwidth=40, raw_description=False):
    """
    Return our 'clean' HelpFormatter, if possible, with a wider default
     for the max width allowed for options.
    """

    required = ("_format_action_invocation", "_metavar_formatter", "_format_args")
    if not all(hasattr(argparse.HelpFormatter, name) for name in required):
        logging.getLogger(__name__).warning(
            "required argparse methods missing, falling back to HelpFormatter."
        )
        return lambda prog: argparse.HelpFormatter(prog, max_help_position=argwidth)

    class KubeHelpFormatter(argparse.HelpFormatter):
        def _format_action_invocation(self, action):
            if not action.option_strings:
                (metavar,) = self._metavar_formatter(action, action.dest)(1)
                return metavar

            opts = list(action.option_strings)

            #  Default optstring is `-l, --long-opt`
            optstring = ", ".join(opts)

            #  If only a long option is supported, then prefix with
            #   whitespace by the width of a short option so that all
            #   long opts start in the same column:
            if len(opts) == 1 and len(opts[0]) > 2:
                optstring = "    " + opts[0]

            #  We're done if no argument supported
            if action.nargs == 0:
                return optstring

            #  Append option argument string after `=`
            default = action.dest.upper()
            args_string = self._format_args(action, default)
            return optstring + "=" + args_string

    class KubeRawDescriptionHelpFormatter(
        KubeHelpFormatter, argparse.RawDescriptionHelpFormatter
    ):
        pass

    if raw_description:
        return lambda prog: KubeRawDescriptionHelpFormatter(
            prog, max_help_position=argwidth
        )
    return lambda prog: KubeHelpFormatter(prog, max_help_position=argwidth)


class YesNoAction(argparse.Action):
    """Simple argparse.Action for options with yes|no arguments"""

    def __init__(
        self,
        option_strings,
        dest,
        default=None,
        help=None,
        metavar="[yes|no]",
    ):
        super().__init__(
            option_strings=option_strings,
            dest=dest,
            default=default,
            help=help,
            metavar=metavar,
        )

    def __call__(self, parser, namespace, value, option_string=None):
        if value not in ["yes", "no"]:
            raise argparse.ArgumentError(self, "requires either 'yes' or 'no'")
        setattr(namespace, self.dest, value == "yes")


class CLIMain(object):
    def __init__(self, logger=None):
        if logger is None:
            self.logger = logging.getLogger()
        else:
            self.logger = logger

    def __call__(self, main_func):
        loglevel = int(os.environ.get("KUBECREATE_PYCLI_LOGLEVEL", logging.INFO))
        logging.basicConfig(
            level=loglevel, format="%(name)s: %(levelname)s: %(message)s"
        )
        exit_code = 0
        try:
            main_func()
        except SystemExit as ex:  # don't intercept sys.exit calls
            exit_code = ex
        except Exception as ex:  # pylint: disable=broad-except
            exit_code = 1
            # Prefer '{strerror}: {filename}' error message over default
            # OSError string representation which includes useless
            # `[Error N]` prefix in output.
            errmsg = getattr(ex, "strerror", None) or str(ex)
            if getattr(ex, "filename", None):
                errmsg += f": '{ex.filename}'"
            self.logger.error(errmsg)
            self.logger.debug(traceback.format_exc())
        finally:
            logging.shutdown()
            sys.exit(exit_code)


def split_at_dash(argv):
    """
    Split argv at the first ``--``. Returns (head, tail) where tail is
    None if no separator was present. Later ``--`` tokens stay in tail.
    """
    try:
        index = argv.index("--")
    except ValueError:
        return list(argv), None
    return list(argv[:index]), list(argv[index + 1 :])


#  Slightly modified from https://stackoverflow.com/a/7205107
def dict_merge(src, new):
    "merges dict new into dict src"
    for key in new:
        if key in src:
            if isinstance(src[key], dict) and isinstance(new[key], dict):
                dict_merge(src[key], new[key])
            elif src[key] == new[key]:
                pass  # same leaf value
            else:
                #  Default is to override:
                src[key] = new[key]
        else:
            src[key] = new[key]
    return src


def xdg_searchpath(subdir=""):
    """
    Build standard kubecreate config search path based on XDG specification
    """
    #  Start with XDG_CONFIG_HOME (or ~/.config) since it is the
    #  highest precedence:
    confdirs = [os.getenv("XDG_CONFIG_HOME") or f"{Path.home()}/.config"]

    #  Append XDG_CONFIG_DIRS as colon separated path (or /etc/xdg)
    #  Note: colon separated paths are in order of precedence.
    confdirs += (os.getenv("XDG_CONFIG_DIRS") or "/etc/xdg").split(":")

    return [Path(directory, "kubecreate", subdir) for directory in confdirs]


class UtilConfig:
    """
    Very simple class for loading hierarchical configuration for
    kubecreate. Configuration is loaded as a dict from an optional
    initial dict, overriding from XDG system and user base directories
    in that order.

    Config files are loaded from <name>.<ext>, where ext can be one
    of json, yaml, or toml. If multiple files exist they are processed
    in glob(3) order.

    Args:
        name: config name, used as the stem of config file to load
        subcommand (optional): name of subcommand. Used as name of subtable
                               in configuration to use.
        initial_dict: Set of default values (optional)

    """

    extension_handlers = {
        ".toml": tomllib.load,
        ".json": json.load,
        ".yaml": yaml.safe_load,
    }

    #  Keys understood at the top level (or in a subcommand table)
    known_keys = ("kubeconfig", "context", "namespace", "output")

    def __init__(self, name, subcommand=None, initial_dict=None):
        self.name = name
        self.dict = {}
        if initial_dict:
            self.dict = copy.deepcopy(initial_dict)
        self.config = self.dict

        #  If not None,  use subcommand config in subtable = 'subtable'
        self.subtable = subcommand

        #  Build config search path in precedence order based on XDG
        #  specification, then reverse it since files are merged in
        #  reverse precedence order.
        self.searchpath = xdg_searchpath()
        self.searchpath.reverse()

    def load(self):
        """Load configuration from current searchpath

        Returns self so that constructor and load() can be called like

        >>> config = UtilConfig("kubecreate").load()

        """

        for path in self.searchpath:
            for filepath in sorted(glob.glob(f"{path}/{self.name}.*")):
                conf = {}
                ppath = PurePosixPath(filepath)

                # ignore files with unsupported extensions:
                if ppath.suffix not in self.extension_handlers:
                    continue

                try:
                    with open(filepath, "rb") as ofile:
                        conf = self.extension_handlers[ppath.suffix](ofile)
                except (
                    tomllib.TOMLDecodeError,
                    json.decoder.JSONDecodeError,
                    yaml.YAMLError,
                ) as exc:
                    #  prepend file path to decode exceptions in case it
                    #  it is missing (e.g. tomllib)
                    raise ValueError(f"{filepath}: {exc}") from exc

                #  An empty yaml document loads as None
                if conf is None:
                    conf = {}
                self.validate(filepath, conf)

                dict_merge(self.dict, conf)

        # If a subtable is set, then layer it over the top level:
        if self.subtable and self.subtable in self.dict:
            self.config = dict_merge(
                {k: v for k, v in self.dict.items() if not isinstance(v, dict)},
                self.dict[self.subtable],
            )

        return self

    def validate(self, path, conf):
        """
        Validate config file as it is loaded before merging it with the
        configuration. Raises ValueError on failure.
        """
        if not isinstance(conf, dict):
            raise ValueError(f"{path}: top level of config must be a mapping")
        for key, value in conf.items():
            if isinstance(value, dict):
                #  subcommand table
                self.validate(f"{path}: [{key}]", value)
            elif key not in self.known_keys:
                raise ValueError(f"{path}: unknown key '{key}'")
            elif not isinstance(value, str):
                raise ValueError(f"{path}: '{key}' must be a string")

    def get(self, key, default=None):
        return self.config.get(key, default)

    def __getattr__(self, attr):
        try:
            return self.config[attr]
        except KeyError:
            raise AttributeError(attr) from None
