###############################################################
# Copyright 2025 Lawrence Livermore National Security, LLC
# (c.f. AUTHORS, NOTICE.LLNS, COPYING)
#
# This file is part of the Flux resource manager framework.
# For details, see https://github.com/flux-framework.
#
# SPDX-License-Identifier: LGPL-3.0
###############################################################

"""Validate constructed objects using jsonschema

Schemas are bundled in ``kubecreate/schemas/<kind>.json``. They check
structure only, value checks such as restartPolicy are left to the
API server.
"""

import json
import os

import jsonschema

from kubecreate.errors import SchemaError

SCHEMA_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "schemas")

_schemas = {}


def load_schema(name):
    if name not in _schemas:
        path = os.path.join(SCHEMA_DIR, f"{name}.json")
        with open(path) as fd:
            _schemas[name] = json.load(fd)
    return _schemas[name]


def validate(name, data):
    """
    Validate data (a dict) against bundled schema name.

    :raises SchemaError: data does not match the schema
    """
    try:
        jsonschema.validate(data, load_schema(name))
    except jsonschema.exceptions.ValidationError as exc:
        path = ".".join(str(x) for x in exc.absolute_path)
        where = f" at {path}" if path else ""
        raise SchemaError(f"error validating data{where}: {exc.message}") from exc
