from setuptools import setup, find_packages

setup(
    name="hashdb",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.8",
    install_requires=[],
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': [
            'hashdb=hashdb.cli:main',
        ],
    },
)
