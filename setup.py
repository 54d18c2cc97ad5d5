#!/usr/bin/env python3
"""
Setup script for typedyaml.

typedyaml is pure Python. The YAML scanner and emitter come from PyYAML,
which uses its LibYAML based C loader when it was built with one.

Extras:
- pretty : ruamel.yaml backend for FormatOptions(pretty=True)
- test   : pytest
"""

import os
import re
from setuptools import setup


def read_version():
    """Get __version__ from the package without importing it."""
    here = os.path.dirname(os.path.abspath(__file__))
    with open(os.path.join(here, 'typedyaml', '__init__.py'), encoding='utf-8') as f:
        match = re.search(r"^__version__ = '([^']+)'", f.read(), re.M)
    return match.group(1)


setup(
    name='typedyaml',
    version=read_version(),
    description='Typed YAML serialization: Python types and a Value Tree to YAML text and back',
    python_requires='>=3.8',
    packages=['typedyaml'],
    package_data={'typedyaml': ['__init__.pyi']},
    install_requires=[
        'PyYAML>=5.1',
    ],
    extras_require={
        'pretty': ['ruamel.yaml>=0.18'],
        'test': ['pytest', 'ruamel.yaml>=0.18'],
    },
)
