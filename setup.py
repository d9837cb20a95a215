from setuptools import setup, find_packages

setup(
    name="bond_yield_engine",
    version="0.1.0",
    description="Decimal bond price/yield engine",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "numpy",
        "pandas",
    ],
    extras_require={
        "test": [
            "pytest",
            "scipy",
        ],
    },
    python_requires=">=3.8",
)
