"""Setup configuration for browserrun."""

from setuptools import setup, find_packages

setup(
    name="browserrun",
    version="0.1.0",
    description="Parallel browser test runner with WebDriver server lifecycle management",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.12",
    install_requires=[
        "requests>=2.31.0",
        "pyyaml>=6.0",
        "click>=8.1.0",
        "pytest>=7.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "browserrun=browserrun.cli:main",
        ],
    },
)
