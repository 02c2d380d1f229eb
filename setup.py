#!/usr/bin/env python3
"""
Setup script for Sitesync - static article sync for a headless CMS.
"""

from setuptools import setup, find_packages
import os

# Read the contents of README file
this_directory = os.path.abspath(os.path.dirname(__file__))
with open(os.path.join(this_directory, 'README.md'), encoding='utf-8') as f:
    long_description = f.read()

setup(
    name='sitesync',
    version='1.0.0',
    description='Keeps static article pages, sitemap and IndexNow submissions in step with a headless CMS',
    long_description=long_description,
    long_description_content_type='text/markdown',
    packages=find_packages(include=['sitesync_pkg', 'sitesync_pkg.*']),
    package_data={
        'sitesync_pkg': [
            'templates/*.html',
        ],
    },
    include_package_data=True,
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: Developers',
        'Operating System :: OS Independent',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'Topic :: Internet :: WWW/HTTP :: Site Management',
        'Topic :: Text Processing :: Markup :: HTML',
    ],
    python_requires='>=3.9',
    install_requires=[
        'requests>=2.28',
        'Jinja2>=3.1',
        'MarkupSafe>=2.1',
        'PyYAML>=6.0',
        'mistune>=3.0',
        'fastapi>=0.100',
        'uvicorn>=0.23',
        'python-dotenv>=1.0',
    ],
    extras_require={
        'test': [
            'pytest>=7.0',
            'pytest-cov>=4.0',
            'httpx>=0.24',
        ],
    },
    entry_points={
        'console_scripts': [
            'sitesync=sitesync_pkg.cli:main',
        ],
    },
    keywords='headless cms, static site, sitemap, indexnow, webhook',
)
