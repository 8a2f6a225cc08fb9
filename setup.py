from setuptools import find_packages, setup

setup(
    name='nesdbg',
    version='1.0.0',
    description='Host-side debug console for the NES FPGA (raw packets, test scripts, ROM loading)',
    author='',
    author_email='',
    packages=find_packages(include=['nesdbg', 'nesdbg.*']),
    python_requires='>=3.11',
    install_requires=[
        'construct',
        'marshmallow>=3.13',
        'msgspec>=0.18',
        'prometheus-client>=0.20',
        'pyserial',
        'tenacity>=8.2',
        'transitions',
    ],
    extras_require={
        'test': [
            'pytest',
        ],
    },
    entry_points={
        'console_scripts': [
            'nesdbg=nesdbg.cli:main',
        ],
    },
    classifiers=[
        'Programming Language :: Python :: 3',
        'Operating System :: POSIX :: Linux',
    ],
)
