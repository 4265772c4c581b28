"""
Setup script for structure-layout package.

Install with:
    pip install .
    pip install -e .  # Development mode
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read README for long description
readme_path = Path(__file__).parent / "README.md"
if readme_path.exists():
    long_description = readme_path.read_text(encoding="utf-8")
else:
    long_description = "2D coordinate generation for chemical structure diagrams"

# Read version from package
version = {}
version_path = Path(__file__).parent / "structure_layout" / "__init__.py"
if version_path.exists():
    with open(version_path) as f:
        for line in f:
            if line.startswith("__version__"):
                exec(line, version)
                break

setup(
    name="structure-layout",
    version=version.get("__version__", "1.0.0"),
    description="2D coordinate generation for chemical structure diagrams",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="Research Team, UCT Prague",
    author_email="research@vscht.cz",
    packages=find_packages(exclude=["tests", "tests.*", "docs", "examples", "notebooks"]),
    package_data={"structure_layout": ["data/*.smi"]},
    python_requires=">=3.9",
    install_requires=[
        "rdkit>=2023.9.1",
        "numpy>=1.24.0",
        "scipy>=1.11.0",
        "pandas>=2.0.0",
        "shapely>=2.0.0",
        "click>=8.1.0",
        "tqdm>=4.65.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-cov>=4.1.0",
            "black>=23.0.0",
            "flake8>=6.0.0",
            "mypy>=1.4.0",
            "isort>=5.12.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "structure-layout=structure_layout.cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering :: Chemistry",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    keywords=[
        "structure diagram",
        "2D coordinates",
        "depiction",
        "rdkit",
        "cheminformatics",
    ],
    include_package_data=True,
    zip_safe=False,
)
