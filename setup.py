from setuptools import setup


with open('README.md', 'r', encoding='utf-8') as readme:
    long_description = readme.read()


setup(
    name='nfgsolver',
    version='1.0',
    description='Nash equilibria of finite normal form games: extreme point enumeration and polymatrix approximation',
    long_description=long_description,
    long_description_content_type='text/markdown',
    classifiers=[
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'License :: OSI Approved :: MIT License',
        'Operating System :: OS Independent',
        'Topic :: Scientific/Engineering',
        'Topic :: Scientific/Engineering :: Mathematics',
        'Intended Audience :: Science/Research',
    ],
    keywords='game theory, normal form games, Nash equilibrium, vertex enumeration, best response polytope,'
             ' polymatrix approximation, computational economics',

    packages=['nfgsolver', 'nfgsolver.enumeration', 'nfgsolver.utility'],

    python_requires='>=3.9',
    install_requires=[
        'numpy',
        'scipy',
        'pandas',
        'matplotlib',
        'openpyxl',
        'pygambit>=16.2,<16.7',
    ],
    extras_require={
        'test': ['pytest'],
    },

    entry_points={
        'console_scripts': [
            'nfgsolver-enummixed = nfgsolver.utility.cli:enummixed',
            'nfgsolver-ipa = nfgsolver.utility.cli:ipa',
        ],
    },

    zip_safe=False,
)
