# setup.py
from setuptools import setup, find_packages

setup(
    name="elbtal_backup",
    version="1.0.0",
    description="Lead and document export / backup service for the Elbtal back office",
    package_dir={"": "backend"},
    packages=find_packages(
        "backend",
        exclude=(
            "tests",
            "docs",
        )
    ),
    install_requires=[
        "fastapi",
        "uvicorn",
        "requests",
        "psycopg2-binary",
        "python-multipart",
    ],
    extras_require={
        "test": [
            "pytest",
            "httpx",
        ],
    },
    entry_points={
        "console_scripts": [
            "elbtal-backup=elbtal_backup.cli:main",
        ],
    },
    python_requires=">=3.10",
)
