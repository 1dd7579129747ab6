#!/usr/bin/env python

import codecs
import os
import re

from setuptools import find_packages
from setuptools import setup

ROOT_DIR = os.path.dirname(__file__)
SOURCE_DIR = os.path.join(ROOT_DIR)

requirements = [
    'packaging >= 14.0',
    'requests >= 2.26.0',
    'urllib3 >= 1.26.0',
    'websocket-client >= 0.32.0',
]

extras_require = {
    # This is a no-op, as the requests[security] extra is a no-op as of
    # requests 2.26.0; TLS support is always available
    'tls': [],
}

with open(os.path.join(ROOT_DIR, 'docker_api', 'version.py')) as version_py:
    version = re.search(
        r"^version = ['\"]([^'\"]+)['\"]", version_py.read(), re.M
    ).group(1)

with open(os.path.join(ROOT_DIR, 'test-requirements.txt')) as test_reqs_txt:
    test_requirements = [line for line in test_reqs_txt]

extras_require['test'] = test_requirements


long_description = ''
with codecs.open(os.path.join(ROOT_DIR, 'README.md'),
                 encoding='utf-8') as readme_md:
    long_description = readme_md.read()

setup(
    name="docker-api",
    version=version,
    description="A Python client library for the Docker Engine API.",
    long_description=long_description,
    long_description_content_type='text/markdown',
    packages=find_packages(exclude=["tests.*", "tests"]),
    install_requires=requirements,
    tests_require=test_requirements,
    extras_require=extras_require,
    python_requires='>=3.7',
    zip_safe=False,
    test_suite='tests',
    classifiers=[
        'Development Status :: 4 - Beta',
        'Environment :: Other Environment',
        'Intended Audience :: Developers',
        'Operating System :: OS Independent',
        'Programming Language :: Python',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.7',
        'Programming Language :: Python :: 3.8',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Topic :: Software Development',
        'Topic :: Utilities',
        'License :: OSI Approved :: Apache Software License',
    ],
)
