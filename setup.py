#!/usr/bin/env python
import os
import sys

from setuptools import setup, find_packages
from setuptools.command.install import install

VERSION = '0.1.0'

class VerifyVersionCommand(install):
    """Custom command to verify that the git tag matches our version"""
    description = 'verify that the git tag matches our version'

    def run(self):
        tag = os.getenv('CIRCLE_TAG', '')
        tag = tag.lstrip('v')

        if tag != VERSION:
            info = f"Git tag: {tag} does not match the version of this app: {VERSION}"
            sys.exit(info)

setup(
    name='stratum',
    version=VERSION,
    description='Layered, schema typed tag resolution for game data objects.',
    packages=find_packages(include=('stratum', 'stratum.*')),
    python_requires='>=3.10',
    install_requires=[
        'fastjsonschema>=2.18.0,<2.22.0',
        'msgspec>=0.19.0,<0.20.0',
        'PyYAML>=5.4,<7.0',
        'regex>=2022.9.11',
        'simpleeval>=0.9.13,<2.0.0',
    ],
    extras_require={
        'test': [
            'pytest>=7.2.0,<9.0.0',
            'pytest-cov>=4.0.0,<7.0.0',
        ],
    },
    cmdclass={
        'verify': VerifyVersionCommand,
    },
)
