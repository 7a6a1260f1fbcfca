#!/usr/bin/env python3
#
# see: https://setuptools.pypa.io/en/latest/userguide/quickstart.html

import setuptools

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setuptools.setup(
    name="snapcache",
    version="0.1.0",
    description="Read-only snapshot cache tier backed by a mutable fallback pool.",
    long_description=long_description,
    long_description_content_type="text/markdown",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    package_dir={"": "src"},
    packages=setuptools.find_packages(where="src"),
    install_requires=[
        "cachetools>=5.3",
        "numpy",
        "tomli>=1.1; python_version < '3.11'",
    ],
    extras_require={
        "test": ["pytest"],
    },
    python_requires=">=3.10",
)
