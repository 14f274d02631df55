#!/usr/bin/env python
from setuptools import setup, find_packages


with open("README.md", encoding="utf-8") as f:
    long_description = f.read()


setup(
    name="jstate",
    description="Undo and redo for JSON-like data structures.",
    long_description=long_description,
    long_description_content_type="text/markdown",
    use_scm_version={"write_to": "Lib/jstate/_version.py", "fallback_version": "0.1.0"},
    package_dir={"": "Lib"},
    packages=find_packages("Lib"),
    install_requires=[],
    extras_require={
        "test": ["pytest"],
    },
    setup_requires=["setuptools_scm"],
    python_requires=">=3.8",
    license="MIT",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
    ],
)
