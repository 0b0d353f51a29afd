#!/usr/bin/env python3
"""
qsearch - State-vector simulation and Grover search
Setup configuration for backward compatibility
"""

from setuptools import setup

# Configuration is in pyproject.toml
# This file exists for backward compatibility with older pip versions
setup()
