import re
from pathlib import Path

from setuptools import find_packages, setup  # type: ignore

match = re.search(
    r'__version__ = "(.*?)"', Path("fixture_builder/__init__.py").read_text(encoding="utf-8")
)
assert match
version = match.group(1)

readme = Path("README.md").read_text(encoding="utf-8")

setup(
    name="fixture-builder",
    version=version,
    description="Build database fixture files from factory code.",
    long_description=readme,
    long_description_content_type="text/markdown",
    license="MIT",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: POSIX :: Linux",
        "Programming Language :: Python :: 3 :: Only",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Topic :: Software Development :: Testing",
    ],
    packages=find_packages(include=["fixture_builder"]),
    python_requires=">=3.10",
    install_requires=[
        "flask >=2.0.2",
        "jinja2 >=3",
        "sqlalchemy >= 2.0",
        "werkzeug >=2",
    ],
    extras_require={
        "devel": [
            "black >=21.9b0",
            "flake8 >=3",
            "isort >=5",
            "mypy >=0.910",
            "pylint >=2.11.0",
            "pytest >=5",
            "pytest-cov >=2.10.0",
            "pytest-xdist >=1.32.0",
        ]
    },
    entry_points={"console_scripts": ["fixture-builder=fixture_builder.cli:main"]},
)
