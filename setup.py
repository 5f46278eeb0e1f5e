"""
Voilà Dashboard - Setup

Call-center dashboard library, API server and CLI for the Voilà voice assistant.
"""

from setuptools import setup, find_packages
import os

# Read the README
here = os.path.abspath(os.path.dirname(__file__))
with open(os.path.join(here, "README.md"), encoding="utf-8") as f:
    long_description = f.read()

# Read version
about = {}
with open(os.path.join(here, "voila_dashboard", "__init__.py"), encoding="utf-8") as f:
    for line in f:
        if line.startswith("__version__"):
            exec(line, about)
            break

setup(
    name="voila-dashboard",
    version=about["__version__"],
    author="Voilà Team",
    description="Call statistics, KPI charts, frequent questions and chat tester for the Voilà voice assistant",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.9",
    install_requires=[
        "httpx>=0.25.0",
        "websockets>=11.0",
        "pydantic>=2.0",
        "pydantic-settings>=2.0",
        "fastapi>=0.100.0",
        "uvicorn[standard]>=0.23.0",
        "click>=8.1.0",
        "rich>=13.0.0",
        "pyyaml>=6.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
            "pytest-cov>=4.0",
            "respx>=0.20",
            "mypy>=1.0",
            "ruff>=0.1.0",
        ],
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
            "respx>=0.20",
        ],
    },
    entry_points={
        "console_scripts": [
            "voila=voila_cli.main:cli",
            "voila-server=voila_dashboard.server.app:main",
        ],
    },
    classifiers=[
        "Development Status :: 5 - Production/Stable",
        "Environment :: Console",
        "Framework :: FastAPI",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Communications :: Telephony",
        "Topic :: Software Development :: Libraries :: Python Modules",
    ],
    keywords=[
        "voice",
        "call-center",
        "dashboard",
        "supabase",
        "pipecat",
        "vapi",
    ],
    include_package_data=True,
    zip_safe=False,
)
