#!/usr/bin/env python

from setuptools import setup

setup(
    name='scriptsvg',
    version='0.1.0',
    license='BSD 3-clause license',
    description='Render terminal sessions recorded with script(1) as SVG animations',
    long_description='A command line tool written in Python which replays '
                     'a typescript and its timing file and renders the '
                     'session as a standalone, looping SVG animation.',
    classifiers=[
        'Environment :: Console',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: BSD License',
        'Operating System :: MacOS',
        'Operating System :: POSIX :: BSD',
        'Operating System :: POSIX :: Linux',
        'Programming Language :: Python',
        'Programming Language :: Python :: 3',
        'Topic :: Multimedia :: Graphics',
        'Topic :: Terminals'
    ],
    python_requires='>=3.6',
    packages=[
        'scriptsvg',
        'scriptsvg.tests'
    ],
    package_data={
        'scriptsvg': ['data/*.ini'],
    },
    entry_points={
        'console_scripts': [
            'scriptsvg=scriptsvg.main:main',
        ]
    },
    install_requires=[
        'lxml',
        'pyte',
        'wcwidth',
    ],
    extras_require={
        'dev': [
            'coverage',
            'pylint',
            'twine',
            'wheel',
        ]
    }
)
