"""Setup script for the mycowood package."""

from setuptools import find_packages, setup

setup(
    name="mycowood",
    version="0.1.0",
    description="MycoWood grow chamber serial bridge, live dashboard feed and CSV log",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "pyyaml",
        "python-dotenv",
        "aiohttp",
        "rich",
        "pyserial",
        "pyserial-asyncio",
    ],
    extras_require={
        "dev": [
            "pytest",
            "pytest-asyncio",
            "black",
            "isort",
            "mypy",
        ],
    },
    entry_points={
        "console_scripts": [
            "mycowood-bridge=mycowood.bridge:main",
            "mycowood-display=mycowood.display:main",
        ],
    },
)
