"""
setup.py for the casmpc Python package.

The package sources live under python/:

    pip install -e .
    pip install -e ".[dev]"   # test and lint tooling
"""

from setuptools import find_packages, setup

setup(
    name="casmpc",
    version="0.1.0",
    description="Multiple-shooting nonlinear MPC with warm-started receding-horizon solves",
    package_dir={"": "python"},
    packages=find_packages(where="python"),
    python_requires=">=3.9",
    install_requires=[
        "numpy>=1.20",
        "scipy>=1.7",
        "casadi>=3.6",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "pytest-cov>=4.0",
            "hypothesis>=6.0",
            "black>=23.0",
            "ruff>=0.1.0",
            "mypy>=1.0",
        ],
    },
)
