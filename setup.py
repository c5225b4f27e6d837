###############################################################
# Copyright 2025 Lawrence Livermore National Security, LLC
# (c.f. AUTHORS, NOTICE.LLNS, COPYING)
#
# This file is part of the Flux resource manager framework.
# For details, see https://github.com/flux-framework.
#
# SPDX-License-Identifier: LGPL-3.0
###############################################################

# Usage
# pip install .
# pip install -e .[test]

import os
import re

from setuptools import find_packages, setup

# Metadata
package_name = "kubecreate"
package_description = "Create Kubernetes workloads from the command line"
package_url = "https://github.com/flux-framework/flux-core"
package_keywords = "kubernetes, cronjob, job, orchestration, cli"

# top level with setup.py, src, t
here = os.path.dirname(os.path.abspath(__file__))


def read_file(filename):
    """
    Read a filename into a text blob.
    """
    with open(filename, "r") as fd:
        data = fd.read()
    return data


def get_version():
    """
    Read __version__ from the package without importing it
    """
    init = read_file(os.path.join(here, "src", package_name, "__init__.py"))
    match = re.search(r'^__version__ = "([^"]+)"', init, re.M)
    if not match:
        raise RuntimeError("Unable to find __version__ in package")
    return match.group(1)


install_requires = [
    "kubernetes>=24.2.0,<36",
    "urllib3",
    "pyyaml",
    "jsonschema",
    'tomli; python_version < "3.11"',
]

setup(
    name=package_name,
    version=get_version(),
    description=package_description,
    keywords=package_keywords,
    url=package_url,
    package_dir={"": "src"},
    packages=find_packages("src"),
    package_data={package_name: ["schemas/*.json"]},
    include_package_data=True,
    zip_safe=False,
    python_requires=">=3.8",
    install_requires=install_requires,
    extras_require={
        "test": ["pycotap", "pytest"],
        "dev": ["pycotap", "pytest", "black"],
    },
    entry_points={
        "console_scripts": ["kubecreate = kubecreate.cli.main:main"],
    },
    classifiers=[
        "Intended Audience :: Developers",
        "Intended Audience :: System Administrators",
        "License :: OSI Approved :: GNU Lesser General Public License v3 or later (LGPLv3+)",
        "Programming Language :: Python",
        "Programming Language :: Python :: 3",
        "Topic :: Software Development",
        "Topic :: System :: Clustering",
        "Operating System :: Unix",
    ],
)
