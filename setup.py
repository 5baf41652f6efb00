#!/usr/bin/env python
"""
Magpie
======

Magpie is a Python client for `Sentry <http://getsentry.com/>`_. It captures
exceptions, messages, transactions, check-ins and metrics, applies the
configured scope and filters to them, and sends them off as envelopes.
Python's ``logging`` module and uncaught exceptions in the main thread and in
``threading.Thread`` targets are supported out of the box.
"""
from setuptools import setup, find_packages
import re
import ast


_version_re = re.compile(r'VERSION\s+=\s+(.*)')

with open('magpie/__init__.py', 'rb') as f:
    version = str(ast.literal_eval(_version_re.search(
        f.read().decode('utf-8')).group(1)))


install_requires = [
    'requests',
]

tests_require = [
    'exam>=0.5.2',
    'mock',
    'pytest',
]


setup(
    name='magpie',
    version=version,
    author='Sentry',
    author_email='hello@getsentry.com',
    description='Magpie is a client for Sentry (https://getsentry.com)',
    long_description=__doc__,
    packages=find_packages(exclude=("tests", "tests.*",)),
    zip_safe=False,
    extras_require={
        'tests': tests_require,
    },
    license='BSD',
    python_requires='>=3.8',
    install_requires=install_requires,
    include_package_data=True,
    classifiers=[
        'Intended Audience :: Developers',
        'Intended Audience :: System Administrators',
        'Operating System :: OS Independent',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python',
        'Topic :: Software Development',
    ],
)
