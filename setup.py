#!/usr/bin/env python3
"""
loudbatch - Setup Configuration
Batch loudness analysis and normalization monitoring for audio libraries
"""

from setuptools import setup, find_packages

# Read README for long description
with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

# Core dependencies
core_requirements = [
    "mutagen>=1.47.0",      # Sample rate from container headers
    "numpy>=1.24.0",        # Batch statistics
    "tqdm>=4.66.0",         # Progress bars
    "python-dotenv>=1.0.0", # Environment variables
]

# Development dependencies
dev_requirements = [
    "pytest>=7.0.0",
    "pytest-cov>=4.0.0",
]

setup(
    # Package information
    name="loudbatch",
    version="1.0.0",
    description="Batch loudness analysis and normalization monitoring for audio libraries",
    long_description=long_description,
    long_description_content_type="text/markdown",

    # Package discovery
    packages=find_packages(exclude=["tests*", "test_*", "*.tests*"]),
    include_package_data=True,

    # Dependencies
    install_requires=core_requirements,
    extras_require={
        "dev": dev_requirements,
    },

    # Console entry points
    entry_points={
        "console_scripts": [
            "loudbatch=loudbatch.cli.main:main",
        ],
    },

    # Python version and classifiers
    python_requires=">=3.9",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: End Users/Desktop",
        "Environment :: Console",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Multimedia :: Sound/Audio",
        "Topic :: Multimedia :: Sound/Audio :: Analysis",
        "Topic :: Utilities",
    ],

    # Keywords for PyPI search
    keywords=[
        "audio", "loudness", "lufs", "true-peak", "ffmpeg", "loudnorm",
        "normalization", "mp3", "batch",
    ],

    zip_safe=False,
    platforms=["any"],
)
