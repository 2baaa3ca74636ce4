#!/usr/bin/env python3
"""
Setup script for the Click Battler client
"""

from setuptools import setup, find_packages

setup(
    name="click-battler-client",
    version="0.0.1",
    description="Websocket client that mirrors Click Battler world state and sends player actions",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "websockets==15.0",
        "click==8.1.7",
        "typer==0.12.3",
        "rich==13.9.2",
        "aioconsole==0.8.1",
    ],
    extras_require={
        "test": [
            "pytest==8.4.2",
            "pytest-asyncio==1.2.0",
        ],
    },
    python_requires=">=3.10",
    entry_points={
        'console_scripts': [
            'battler-client=client.battler_cli:main',
        ],
    },
)
