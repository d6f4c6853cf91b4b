#!/usr/bin/env python3

from datetime import datetime
from datetime import timezone
from setuptools import find_packages
from setuptools import setup
from subprocess import run

with open('README.rst', 'r') as readme_file:
    readme_text = readme_file.read()

commit_datetime = datetime.min

try:
    git = run(['git', 'log', '--max-count=1', '--format=%ct'], capture_output=True)
except FileNotFoundError:
    git = None

if git and git.returncode == 0 and git.stdout.strip():
    commit_timestamp = int(git.stdout.strip(b'\n'))
    commit_datetime = datetime.fromtimestamp(commit_timestamp, timezone.utc)

version = f'0.1.{commit_datetime:%y%m%d}'

setup(
    name='tlsoneshot',
    version=version,
    author='Roman Akopov',
    author_email='adontz@gmail.com',
    # maintainer='',
    # maintainer_email='',
    # url='',
    license='LGPL-3.0-or-later',
    description='One-shot HTTPS client',
    long_description=readme_text,
    long_description_content_type='text/x-rst',
    # keywords='',
    # platforms='',
    classifiers=[
        'Development Status :: 4 - Beta',
        'Environment :: Console',
        'Environment :: Web Environment',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: GNU Lesser General Public License v3 (LGPLv3)',
        'Operating System :: OS Independent',
        'Programming Language :: Python :: 3',
        'Topic :: Internet :: WWW/HTTP',
    ],
    python_requires='>=3.8',
    install_requires=[
        'certifi',
        'httptools',
    ],
    extras_require={
        'test': [
            'cryptography',
        ],
    },
    packages=find_packages(exclude=('docs', 'examples', 'tests')),
)
