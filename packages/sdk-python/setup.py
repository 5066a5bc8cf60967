"""Setup for SealSign Python SDK."""

from setuptools import find_packages, setup

setup(
    name="sealsign-sdk",
    version="0.1.0",
    description="SealSign API Python SDK",
    packages=find_packages(include=["sealsign_sdk", "sealsign_sdk.*"]),
    install_requires=[
        "requests>=2.31.0",
    ],
    python_requires=">=3.11",
)
