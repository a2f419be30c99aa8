from setuptools import setup, find_packages

setup(
    name='tracker_geometry_extractor',
    version='0.1',
    packages=find_packages(exclude=['tests', 'tests.*', 'analysis_scripts']),
    install_requires=[
        'numpy',
        'matplotlib',
        'mplhep'
    ],
    extras_require={
        'test': ['pytest'],
    },
    description='Extraction of tracker volumes, materials and topology from an in-memory detector model',
)
