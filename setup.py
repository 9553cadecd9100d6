"""
Setup script for the LII Spectra package
"""

from setuptools import setup
from pathlib import Path

# Read long description from README
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text()

# Read requirements
requirements = [
    line.strip()
    for line in (this_directory / "requirements.txt").read_text().splitlines()
    if line.strip() and not line.startswith('#')
]

setup(
    name="liispectra",
    version="1.0.0",
    author="Timothy Sipkens",
    author_email="",
    description="Heat transfer modelling and spectroscopic pyrometry for time-resolved laser-induced incandescence",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="",
    # The repository root is the package
    package_dir={"liispectra": "."},
    packages=["liispectra"],
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering :: Physics",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.8",
    install_requires=requirements,
    extras_require={
        "test": ["pytest"],
    },
    keywords="laser-induced incandescence LII pyrometry nanoparticles heat transfer soot",
)
