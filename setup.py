"""setuptools setup for Dailies.

Install for development:
    pip install -e ".[test]"
"""

from setuptools import setup, find_packages

setup(
    name="Dailies",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "PyQt6",
        "SQLAlchemy>=2.0",
        "httpx",
        "python-jose[cryptography]",
    ],
    extras_require={
        "test": ["pytest", "cryptography"],
    },
    entry_points={
        "console_scripts": ["dailies=dailies.__main__:main"],
    },
)
