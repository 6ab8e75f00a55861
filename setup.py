"""Install the IdentityBase datastore package."""

from setuptools import setup, find_packages

setup(
    name='identitybase-datastore',
    version='0.1.0',
    packages=find_packages(exclude=['*test*']),
    python_requires='>=3.9',
    install_requires=[
        "sqlalchemy>=2.0",
        "pydantic>=2",
        "pytz",
        "flask",
        "click",
        "python-json-logger",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
            "mimesis",
        ],
    },
    entry_points={
        'console_scripts': ['identitybase=identitybase.cli:main'],
    },
    zip_safe=False
)
