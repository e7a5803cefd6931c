"""Setup script for mcrt package."""

from setuptools import setup, find_packages

setup(
    name='mcrt',
    version='0.1.0',
    packages=find_packages(include=['mcrt', 'mcrt.*']),
    package_data={'mcrt.config': ['defaults.yaml']},
    python_requires='>=3.9',
    install_requires=[
        'numpy>=1.20.0',
        'scipy>=1.9.0',
        'matplotlib>=3.3.0',
        'pyyaml>=5.4',
    ],
    extras_require={
        'test': ['pytest>=7.0'],
    },
)
