from setuptools import setup, find_packages

setup(
    name="keyedgraph",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.8",
    install_requires=[
        "requests>=2.25.0",
        "numpy>=1.20",
    ],
    extras_require={
        "sentence-transformers": ["sentence-transformers>=2.2"],
        "test": ["pytest>=7.0"],
    },
    zip_safe=False,
)
