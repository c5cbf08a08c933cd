#!/usr/bin/env python3
"""
Setup script for hayesmodem.
"""

from setuptools import setup, find_packages

setup(
    name="hayesmodem",
    version="1.0.0",
    description="Hayes-compatible modem emulator that bridges AT dial-up sessions to TCP endpoints",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    license="MIT",
    packages=find_packages(exclude=["tests", "tests.*", "examples"]),
    include_package_data=True,
    python_requires=">=3.10",
    install_requires=[
        "PyYAML>=6.0",
        "sounddevice>=0.4.6",
        "soundfile>=0.12.1",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-cov>=4.1.0",
            "pytest-timeout>=2.1.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "hayes-modem=hayesmodem.cli:main",
        ],
    },
    keywords=["modem", "hayes", "at-commands", "emulator", "dosbox", "bbs", "retro"],
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: End Users/Desktop",
        "Topic :: Communications",
        "Topic :: System :: Emulators",
        "Operating System :: OS Independent",
        "License :: OSI Approved :: MIT License",
    ],
)
