"""
Toolgate - one tool endpoint for many content stores
Guarded, schema-typed tool gateway for Notion, Google Drive, GitHub and web search
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="toolgate",
    version="1.0.0",
    description="Uniform tool gateway for content backends",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["toolgate", "toolgate.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
    ],
    python_requires=">=3.10",
    install_requires=[
        "aiohttp>=3.9.0",
        "fastapi>=0.109.0",
        "uvicorn>=0.25.0",
        "click>=8.0.0",
        "rich>=13.0.0",
        "pydantic>=2.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.23.0",
            "httpx>=0.26.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "toolgate=toolgate.cli:main",
        ],
    },
)
