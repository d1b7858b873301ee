from setuptools import setup, find_packages

setup(
    name='manifetch',
    version='0.1.0',
    description='Cached, channel-aware fetching of platform release manifests',
    packages=find_packages('src'),
    package_dir={'': 'src'},
    python_requires='>=3.10',
    install_requires=[
        'requests',
        'PyYAML',
        'platformdirs',
        'rich',
    ],
    extras_require={
        'test': [
            'pytest',
            'pytest-mock',
        ],
    },
)
