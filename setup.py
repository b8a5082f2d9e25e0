"""
Packaging for RiderOps.
"""

from setuptools import setup, find_packages

setup(
    name="riderops",
    version="1.0.0",
    description="Rider eligibility derivation and bulk recompute over a rider store",
    packages=find_packages(include=['riderops', 'riderops.*']),
    package_data={
        'riderops.config': ['default_config.yaml'],
    },
    python_requires='>=3.9',
    install_requires=[
        'click',
        'pyyaml',
        'sqlalchemy>=2.0',
    ],
    extras_require={
        'postgres': ['psycopg2-binary'],
        'test': ['pytest', 'pytest-asyncio'],
    },
    entry_points={
        'console_scripts': [
            'riderops=riderops.cli:cli',
        ],
    },
)
