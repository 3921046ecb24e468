from setuptools import setup

setup(
    name='modelinsight',
    version='0.1.0',
    description='Structured information from fitted regression models.',
    long_description='Predictions, fitting data, response transformations and report formatting for fitted regression models.',
    classifiers=[
        'Development Status :: 2 - Pre-Alpha',
        'License :: OSI Approved :: GNU General Public License v3 (GPLv3)',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Topic :: Scientific/Engineering',
    ],
    license='GPLv3',
    packages=['modelinsight'],
    package_dir={'': 'src'},
    python_requires='>=3.9',
    install_requires=[
        'numpy>=1.23.2',
        'pandas>=1.4.3',
        'scipy>=1.9.0',
        'statsmodels>=0.13.2',
        'patsy>=0.5.2',
        'matplotlib>=3.6.1',
        'seaborn',
        'scikit-learn'
    ],
    extras_require={
        'test': ['pytest'],
    },
    zip_safe=False
)
