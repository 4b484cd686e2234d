import os
import re

from setuptools import find_packages, setup


def get_version():
    """
    read the version from the package without importing it (and its dependencies)
    """
    with open(os.path.join(os.path.dirname(os.path.abspath(__file__)), 'umiconsensus', '__init__.py')) as fh:
        match = re.search(r"^__version__ = '([^']+)'", fh.read(), re.MULTILINE)
    return match.group(1)


def parse_md_readme():
    try:
        with open('README.md') as fh:
            return fh.read()
    except OSError:
        return ''


VERSION = get_version()


# HSTLIB is a dependency for pysam.
# The cram file libraries fail for some OS versions and umiconsensus does not use cram files so we disable these options
os.environ['HTSLIB_CONFIGURE_OPTIONS'] = '--disable-lzma --disable-bz2 --disable-libcurl'


TEST_REQS = [
    'timeout-decorator>=0.3.3',
    'coverage>=4.2',
    'pytest',
    'pytest-cov',
]


INSTALL_REQS = [
    'biopython>=1.79',
    'braceexpand>=0.1.2',
    'numpy>=1.13.1',
    'pysam>=0.15.2',
    'shortuuid>=0.5.0',
]

DEPLOY_REQS = ['twine', 'wheel']


setup(
    name='umiconsensus',
    version='{}'.format(VERSION),
    packages=find_packages(exclude=['tests', 'tests.*']),
    description='Collapses barcode tagged duplicate reads into error-corrected consensus reads',
    long_description=parse_md_readme(),
    long_description_content_type='text/markdown',
    install_requires=INSTALL_REQS,
    extras_require={
        'test': TEST_REQS,
        'dev': ['black', 'flake8'] + TEST_REQS + DEPLOY_REQS,
        'deploy': DEPLOY_REQS,
    },
    python_requires='>=3.9',
    test_suite='tests',
    entry_points={
        'console_scripts': [
            'umiconsensus = umiconsensus.main:main',
        ]
    },
)
