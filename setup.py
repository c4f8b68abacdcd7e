from setuptools import setup, find_packages

setup(
    name='releasefetch',
    version='0.1.0',
    description='Download release assets, including from private repositories, and verify their checksums',
    package_dir={'': 'src'},
    packages=find_packages(where='src'),
    python_requires='>=3.10',
    install_requires=[
        'requests',
        'PyYAML',
        'urllib3',
        'platformdirs',
        'rich',
    ],
    extras_require={
        'test': [
            'pytest<9',
            'pytest-mock',
        ],
    },
    entry_points={
        'console_scripts': [
            'releasefetch=releasefetch.cli:main',
        ],
    },
)
