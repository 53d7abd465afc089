from setuptools import setup, find_packages

setup(
    name="sketchpipe",
    version="0.1.0",
    description="Build, merge and query streaming sketches (frequent items, quantiles) from the command line",
    author="adamfilli",
    packages=find_packages(include=["sketchpipe", "sketchpipe.*"]),
    install_requires=[
        "matplotlib",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "sketchpipe=sketchpipe.cli:main",
        ],
    },
    include_package_data=True,
    python_requires=">=3.11",
)
