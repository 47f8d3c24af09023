from setuptools import setup, find_packages


setup(
    name="sevenpak",
    version="0.1",
    packages=find_packages(include=["sevenpak", "sevenpak.*"]),
    description="Byte-exact reader/writer for XOR-obfuscated 7x7M .pak archives.",
    author="vercingetorx",
    python_requires=">=3.8",
    install_requires=[],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "sevenpak=sevenpak.cli:main",
        ]
    },
)
