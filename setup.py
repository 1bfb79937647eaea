#!/usr/bin/env python
# -*- coding: utf-8 -*-

import os
import re

from setuptools import setup


def get_version(package):
    """
    Return package version as listed in `__version__` in `init.py`.
    """
    init_py = open(os.path.join(package, "__init__.py")).read()
    return re.search("__version__ = ['\"]([^'\"]+)['\"]", init_py).group(1)


def get_long_description():
    """
    Return the README.
    """
    return open("README.md", "r", encoding="utf8").read()


def get_packages(package):
    """
    Return root package and all sub-packages.
    """
    return [
        dirpath
        for dirpath, dirnames, filenames in os.walk(package)
        if os.path.exists(os.path.join(dirpath, "__init__.py"))
    ]


setup(
    name="starlette-relay",
    version=get_version("starlette_relay"),
    license="BSD",
    description="WebSocket chat relay and SSE push demos on Starlette",
    long_description=get_long_description(),
    long_description_content_type="text/markdown",
    packages=get_packages("starlette_relay"),
    python_requires=">=3.8",
    install_requires=[
        "starlette>=0.37",
        "anyio>=4.1",
        "uvicorn>=0.20",
        "httpx>=0.24",
        "websockets>=11",
    ],
    extras_require={
        "test": [
            "pytest>=7",
        ],
    },
    entry_points={
        "console_scripts": [
            "relay-chat-server=starlette_relay.chat:main",
            "relay-chat-client=starlette_relay.client:chat_main",
            "relay-push-server=starlette_relay.push:main",
            "relay-push-client=starlette_relay.client:push_main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Environment :: Web Environment",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: BSD License",
        "Operating System :: OS Independent",
        "Topic :: Internet :: WWW/HTTP",
        "Programming Language :: Python :: 3",
    ],
)
