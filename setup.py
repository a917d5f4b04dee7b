"""
Setup script for paperlingo.

paperlingo keeps the words you look up while reading and schedules them
for review:

1. Learning ladder - minute-scale repetition until a word sticks
2. Spaced review - day-scale intervals that grow with each recall
3. Offline first - a local card store, replicated to a remote copy when online

The 'paperlingo' command is the entry point.
"""

from setuptools import find_packages, setup

setup(
    name="paperlingo",
    version="0.3.0",
    description="Vocabulary retention engine with spaced repetition and offline sync",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    author="paperlingo",
    packages=find_packages(include=["paperlingo", "paperlingo.*"]),
    python_requires=">=3.10",
    install_requires=[
        # CLI
        "typer>=0.9.0",
        "rich>=13.0.0",
        # Database
        "sqlalchemy>=2.0.0",
        # Config & Validation
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        # HTTP
        "requests>=2.28.0",
        "urllib3>=1.26.0",
        # Logging
        "loguru>=0.7.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "ruff>=0.1.0",
            "mypy>=1.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "paperlingo=paperlingo.cli.main:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Education",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Education",
        "Topic :: Education :: Computer Aided Instruction (CAI)",
    ],
    keywords="vocabulary spaced-repetition flashcards cli language-learning",
)
