"""Setup script for sinklog."""

from setuptools import setup, find_packages
import os

# Read the content of README.md
with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

# Read version from __init__.py
with open(os.path.join("src", "sinklog", "__init__.py"), "r") as f:
    for line in f:
        if line.startswith("__version__"):
            version = line.strip().split("=")[1].strip(" '\"")

setup(
    name="sinklog",
    version=version,
    author="Will",
    author_email="will@example.com",
    description="Named loggers fanning out to console, file and remote sinks",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/username/sinklog",
    project_urls={
        "Bug Tracker": "https://github.com/username/sinklog/issues",
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    python_requires=">=3.9",
    install_requires=[
        "python-dotenv>=1.0.0",
        "aiohttp>=3.8.5",
        "rich>=13.5.3",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.21.0",
        ],
    },
)
