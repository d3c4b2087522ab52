"""
Storefront Sync - Package Setup
Setup configuration for the storefront synchronization library and its gateway.
"""

from setuptools import find_packages, setup

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="storefront-sync",
    version="0.1.0",
    author="Storefront Sync Team",
    description="Multi-platform credential and synchronization orchestration for storefront dashboards",
    long_description=long_description,
    long_description_content_type="text/markdown",
    package_dir={"": "src"},
    packages=find_packages(where="src", exclude=["*.tests", "*.tests.*"]),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "Topic :: Office/Business",
    ],
    python_requires=">=3.11",
    install_requires=[
        # Core dependencies
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        "aiohttp>=3.8.0",
        "redis>=4.5.0",
        "tenacity>=8.2.0",
        "apscheduler>=3.10.0,<4.0.0",

        # Security
        "cryptography>=41.0.0",

        # Gateway
        "fastapi>=0.100.0",
        "uvicorn>=0.23.0",

        # Utilities
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "dev": [
            "black>=23.0.0",
            "flake8>=6.0.0",
            "mypy>=1.5.0",
            "pre-commit>=3.3.0",
        ],
        "test": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.1.0",
            "pytest-mock>=3.11.0",
            "httpx>=0.24.0",
        ],
    },
    include_package_data=True,
    package_data={
        "storefront_sync": [
            "py.typed",
        ],
    },
    zip_safe=False,
)
