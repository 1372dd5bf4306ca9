"""Setup script for emwave-assembly."""

import sys
from pathlib import Path
from setuptools import setup, find_packages

# Read version from src/emwave/__init__.py
def get_version():
    """Get version from package __init__.py."""
    version_file = Path(__file__).parent / "src" / "emwave" / "__init__.py"
    with open(version_file) as f:
        for line in f:
            if line.startswith("__version__"):
                return line.split("=")[1].strip().strip('"')
    raise RuntimeError("Could not find version")

# Read long description from README
def get_long_description():
    """Get long description from README.md."""
    readme_file = Path(__file__).parent / "README.md"
    if readme_file.exists():
        with open(readme_file, encoding="utf-8") as f:
            return f.read()
    return ""

# Minimum Python version check
if sys.version_info < (3, 10):
    raise RuntimeError("emwave-assembly requires Python 3.10 or later")

# Core requirements
requirements = [
    "numpy>=1.21.0",
    "scipy>=1.7.0",
    "pyyaml>=6.0",
]

# Optional dependencies
optional_requirements = {
    "test": [
        "pytest>=7.0.0",
        "pytest-cov>=4.0.0",
        "hypothesis>=6.0.0",
    ],
    "dev": [
        "pytest>=7.0.0",
        "pytest-cov>=4.0.0",
        "pytest-xdist>=3.0.0",
        "hypothesis>=6.0.0",
        "black>=22.0.0",
        "isort>=5.10.0",
        "flake8>=5.0.0",
        "mypy>=0.991",
    ],
}

# Convenience groups
optional_requirements["all"] = sorted({
    dep for deps in optional_requirements.values() for dep in deps
})

setup(
    name="emwave-assembly",
    version=get_version(),
    description="Element residual and Jacobian assembly for frequency-domain electromagnetic waves",
    long_description=get_long_description(),
    long_description_content_type="text/markdown",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Science/Research",
        "License :: OSI Approved :: BSD License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Scientific/Engineering :: Physics",
        "Topic :: Scientific/Engineering :: Mathematics",
    ],
    python_requires=">=3.10",
    install_requires=requirements,
    extras_require=optional_requirements,
    zip_safe=False,
    keywords=[
        "finite-element", "electromagnetics", "maxwell", "frequency-domain",
        "jacobian", "computational-physics", "scientific-computing",
    ],
    platforms=["any"],
    license="BSD-3-Clause",
)
