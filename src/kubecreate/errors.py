###############################################################
# Copyright 2025 Lawrence Livermore National Security, LLC
# (c.f. AUTHORS, NOTICE.LLNS, COPYING)
#
# This file is part of the Flux resource manager framework.
# For details, see https://github.com/flux-framework.
#
# SPDX-License-Identifier: LGPL-3.0
###############################################################

"""Exceptions raised by kubecreate commands

Every error is terminal for the invocation. They propagate to
:class:`kubecreate.util.CLIMain`, which logs the message and exits 1.
"""


class CreateError(Exception):
    """Base class for all kubecreate errors"""


class UsageError(CreateError):
    """Malformed or missing command line input (e.g. NAME)"""


class ConfigError(CreateError):
    """The connection or namespace could not be resolved"""


class ValidationError(CreateError):
    """A required option value is missing"""


class SchemaError(CreateError):
    """A constructed object does not match the schema for its kind"""


class SubmissionError(CreateError):
    """The API server rejected the object, or the transport failed"""
