from setuptools import setup, find_packages

setup(
    name="cattle",
    version="0.1.0",
    packages=find_packages(include=["cattle", "cattle.*"]),
    install_requires=[
        "pydantic>=2.5",
        "pydantic-settings",
        "structlog",
        "click",
        "PyYAML",
        "cryptography",
        "pycryptodome",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    python_requires=">=3.8",
    entry_points={
        "console_scripts": [
            "cattle=cattle.cli:cli",
        ],
    }
)
