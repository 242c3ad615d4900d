# setup.py
from setuptools import setup, find_packages

install_requires = [
    # --- CONFIG ---
    "pydantic>=2.0.0",
    "python-dotenv>=1.0.0",
    "pyyaml>=6.0.0",

    # --- STORAGE ---
    "duckdb>=0.10.0",
    "cryptography>=42.0.0",     # Fernet encryption for the secret store

    # --- NETWORK ---
    "httpx>=0.27.0",

    # --- CONSOLE ---
    "rich>=13.0.0",
]

extras_require = {
    # --- TESTS---
    "test": [
        "pytest",
        "pytest-asyncio>=0.24",
    ],
}

setup(
    name="atelier",
    version="0.1.0",
    description="Atelier | perfume workshop inventory with remote access gate",
    packages=find_packages(exclude=("tests", "tests.*")),
    include_package_data=True,
    package_data={"atelier.shared.config": ["settings/*.yaml"]},
    install_requires=install_requires,
    extras_require=extras_require,
    entry_points={
        "console_scripts": [
            "atelier=atelier.shell.main:main",
        ],
    },
    python_requires=">=3.10",
)
