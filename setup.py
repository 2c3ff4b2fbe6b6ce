"""Setup script for nodegrid package."""

from setuptools import find_packages, setup

setup(
    name="nodegrid",
    version="0.1.0",
    description="Terminal dashboard showing cluster nodes as a live grid of boxes",
    packages=find_packages(include=["nodegrid", "nodegrid.*"]),
    python_requires=">=3.10",
    install_requires=[
        "pyyaml>=6.0",
        "rich>=13.0",
        "textual>=0.50",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "nodegrid=nodegrid.dashboard.__main__:main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Environment :: Console",
        "Intended Audience :: System Administrators",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
