#!/usr/bin/env python3
"""
Setup script pour PanelFlow
===========================
"""

from pathlib import Path
from setuptools import setup, find_packages

# Lire le README
HERE = Path(__file__).parent
README = (HERE / "README.md").read_text(encoding='utf-8')

# Lire les requirements
def read_requirements(filename):
    """Lit les requirements depuis un fichier"""
    req_file = HERE / filename
    if req_file.exists():
        lines = req_file.read_text().strip().split('\n')
        return [line.strip() for line in lines if line.strip() and not line.startswith('#')]
    return []

setup(
    name="panelflow",
    version="1.0.0",
    description="Découpage de pages de bandes dessinées scannées en cases (détection OpenCV)",
    long_description=README,
    long_description_content_type="text/markdown",
    author="PanelFlow Contributors",
    license="MIT",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: End Users/Desktop",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
        "Topic :: Multimedia :: Graphics",
        "Topic :: Scientific/Engineering :: Image Recognition",
    ],
    keywords="comics panel detection opencv cbz",
    
    # Structure des packages
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    
    # Requirements
    python_requires=">=3.9",
    install_requires=read_requirements("requirements.txt"),
    extras_require={
        "dev": [
            "pytest>=6.0",
            "pytest-cov",
        ],
    },
    
    # Points d'entrée
    entry_points={
        "console_scripts": [
            "panelflow=panelflow.__main__:run",
        ],
    },
)
