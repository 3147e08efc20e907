"""
Setup script for the job-board project.

Allows development installation with `pip install -e .`
"""

from setuptools import setup, find_namespace_packages

from version import __version__

setup(
    name="job-board",
    version=__version__,
    packages=find_namespace_packages(include=["src", "src.*", "board_service", "board_service.*"]),
    py_modules=["version"],
    python_requires=">=3.11",
    install_requires=[
        "pymongo>=4.6",
        "pydantic>=2.5",
        "pydantic-settings>=2.1",
        "python-dotenv>=1.0",
        "fastapi>=0.110,<0.137",
        "uvicorn>=0.27",
        "langchain-core>=0.3",
        "langchain-openai>=0.2",
        "tenacity>=8.2",
        "firecrawl-py",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
            "httpx>=0.27",
        ],
    },
)
