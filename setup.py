"""
Setup file.
"""

import os

from setuptools import find_packages, setup

KEYWORDS = "c c++ build incremental compiler make gcc clang static shared library"
HERE = os.path.dirname(os.path.abspath(__file__))


def read_version() -> str:
    about = {}
    with open(os.path.join(HERE, "src", "kiln", "__init__.py"), encoding="utf-8") as f:
        for line in f:
            if line.startswith("__version__"):
                exec(line, about)
                break
    return about["__version__"]


if __name__ == "__main__":
    setup(
        name="kiln",
        version=read_version(),
        description="Incremental build tool for C/C++ projects",
        keywords=KEYWORDS,
        python_requires=">=3.8",
        package_dir={"": "src"},
        packages=find_packages(where="src"),
        install_requires=[
            "psutil>=5.9",
            "tqdm>=4.66",
        ],
        extras_require={
            "test": ["pytest>=7"],
        },
        entry_points={
            "console_scripts": ["kiln=kiln.cli:main"],
        },
    )
