"""Install the submission intake service."""

from setuptools import setup, find_packages

setup(
    name='submission-intake',
    version='0.1.0',
    packages=find_packages(exclude=['tests*']),
    zip_safe=False,
    python_requires='>=3.8',
    install_requires=[
        'flask',
        'unidecode',
        'pytz',
        'retry',
    ],
    extras_require={
        'test': ['pytest'],
    },
    include_package_data=True
)
