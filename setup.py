from setuptools import setup, find_packages


setup(
    name="seekgz",
    version="0.1",
    packages=find_packages(include=["seekgz", "seekgz.*"]),
    description="Seekable gzip archives: blocks in plain gzip members with a hidden random-access index.",
    author="vercingetorx",
    python_requires=">=3.8",
    install_requires=[],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "seekgz=seekgz.cli:main",
        ]
    },
)
