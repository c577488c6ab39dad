"""
Setup shim for faceframe.

Package metadata and dependencies live in pyproject.toml; this file only
lets older pip versions perform editable installs.
"""

from setuptools import setup

setup()
