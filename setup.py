#!/usr/bin/env python3

"""
Setup script for XPlane-Arduino-Bridge
Installs the xplane_arduino_bridge package and its dependencies.

Part of the XPlane-Arduino-Bridge project.
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="xplane-arduino-bridge",
    version="1.0.0",
    description="A bridge between X-Plane and an Arduino cockpit panel",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    install_requires=[
        "pyserial>=3.5",
        "websockets>=10.0",
        "requests>=2.25",
        "python-dotenv>=0.19",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: End Users/Desktop",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Topic :: Games/Entertainment :: Simulation",
    ],
    python_requires=">=3.8",
    entry_points={
        "console_scripts": [
            "xplane-arduino-bridge=xplane_arduino_bridge.main:main",
        ],
    },
)
