from setuptools import find_packages, setup

setup(
    name="teambition-panfs",
    version="0.1.0",
    description="Path-addressed filesystem access to Teambition pan cloud storage",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "httpx>=0.27.0",
        "cachetools>=5.0.0",
    ],
    entry_points={
        "console_scripts": [
            "panfs=panfs.__main__:main",
        ],
    },
    python_requires=">=3.10",
    extras_require={
        "dev": [
            "pytest",
            "build",
            "twine",
        ],
    },
)
