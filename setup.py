import os

from setuptools import setup, find_packages

with open(os.path.join(os.path.dirname(__file__), "readme.md"), "r") as fh:
    long_description = fh.read()

setup(
    name='netcafe-server',
    version='1.0.0',
    license='MIT',
    description='Session and billing server for net cafe terminals.',
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=("tests", "tests.*")),
    python_requires='>=3.8',
    install_requires=[
        'aiohttp>=3.8,<4',
        'aiohttp-cors',
        'aiohttp-apispec',
        'apispec>=5.1.1,<6',
        'marshmallow>=3.13,<4',
        'marshmallow-jsonschema',
        'tortoise-orm>=0.19,<1',
        'uvloop',
        'sentry-sdk',
    ],
    extras_require={
        'test': ['pytest', 'Faker'],
        'postgres': ['asyncpg'],
    },
    entry_points={
        'console_scripts': ['netcafe=netcafe.cli:run'],
    },
)
