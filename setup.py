"""
Setup script for cl-position-manager.
"""

from setuptools import setup, find_packages

setup(
    name="cl-position-manager",
    version="0.1.0",
    description="Lifecycle manager for a single concentrated-liquidity position",
    python_requires=">=3.10",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=[
        "nautilus_trader",
        "web3>=7",
        "pydantic>=2",
        "python-dotenv",
        "click>=8.2",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
        ],
    },
    entry_points={
        "console_scripts": [
            "cl-position-manager=cl_position_manager.main:main",
        ],
    },
)
