"""
Setup configuration for the Template Sync system.
Use this for:
- Creating a Distributable Package
- Installing the template_sync console script on an UnRAID host or in a container

If you're just setting up another development environment, consider using `pip install -e .[dev]` instead.

For Distributable Package:
- python setup.py sdist bdist_wheel
    (Creates installable .whl files in dist/ folder)
"""

from setuptools import setup, find_packages
from pathlib import Path

with open("requirements.txt", "r", encoding="utf-8") as fh:
    requirements = [line.strip() for line in fh if line.strip() and not line.startswith("#")]

# Separate main requirements from development requirements
main_requirements = []
dev_requirements = []

for req in requirements:
    if any(dev_pkg in req for dev_pkg in ["pytest", "black", "flake8", "mypy"]):
        dev_requirements.append(req)
    else:
        main_requirements.append(req)

setup(
    name="template_sync",
    version="1.0.0",
    author="Template Sync Team",
    description="Reconciles local UnRAID container templates with their Community Applications counterparts.",
    long_description=Path("README.md").read_text(encoding="utf-8"),
    long_description_content_type="text/markdown",
    packages=find_packages(include=["template_sync", "template_sync.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: System Administrators",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3.9",
        "Topic :: System :: Systems Administration",
        "Topic :: Text Processing :: Markup :: XML",
    ],
    python_requires=">=3.9",
    install_requires=main_requirements,
    extras_require={
        "dev": dev_requirements,
    },
    entry_points={
        "console_scripts": [
            "template_sync=template_sync.cli:main",
        ],
    },
)
