"""Setup script for quick installation."""

from setuptools import find_packages, setup

setup(
    name="football-analysis",
    version="0.1.0",
    description="Statistical market probabilities and picks from football fixture history",
    author="Football Analysis Team",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.11",
    install_requires=[
        "pandas>=2.1.0",
        "sqlalchemy>=2.0.0",
        "click>=8.1.0",
        "rich>=13.5.0",
        "pydantic>=2.3.0",
        "pydantic-settings>=2.0.0",
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "football-analysis=football_analysis.cli.analyzer:main",
        ],
    },
)
