from setuptools import find_packages, setup

setup(
    name="prgate",
    version="0.1.0",
    description="Hunk-level fingerprinting and interactive approval of pending pull request reviews",
    packages=find_packages(include=["prgate", "prgate.*"]),
    include_package_data=True,
    python_requires=">=3.11",
    install_requires=[
        "pydantic>=2.0",
        "PyYAML>=6.0",
    ],
    extras_require={
        "ui": ["fastapi>=0.100", "uvicorn>=0.23"],
        "test": ["pytest>=7.0", "fastapi>=0.100", "httpx>=0.24"],
    },
    entry_points={"console_scripts": ["prgate=prgate.cli:main"]},
)
