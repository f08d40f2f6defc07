#!/usr/bin/env python

from setuptools import setup, find_packages

long_description = open("README.rst").read()
install_requires = ['packaging',
                    'numpy>=1.18.5',
                    'quantities>=0.12.1']
extras_require = {
    'test': ['pytest'],
}

with open("oecontinuous/version.py") as fp:
    d = {}
    exec(fp.read(), d)
    oecontinuous_version = d['version']

setup(
    name="oecontinuous",
    version=oecontinuous_version,
    packages=find_packages(include=["oecontinuous", "oecontinuous.*"]),
    install_requires=install_requires,
    extras_require=extras_require,
    author="oecontinuous authors and contributors",
    description="File-backed random access to Open Ephys legacy "
                ".continuous recordings, with their xml metadata",
    long_description=long_description,
    license="BSD-3-Clause",
    python_requires=">=3.8",
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: Science/Research',
        'License :: OSI Approved :: BSD License',
        'Natural Language :: English',
        'Operating System :: OS Independent',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3 :: Only',
        'Topic :: Scientific/Engineering']
)
