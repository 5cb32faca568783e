"""Setup configuration for Fihris."""

from setuptools import setup, find_packages

setup(
    name='fihris',
    version='1.0.0',
    description='Academic research outline generation, scoring and editing assistant',
    author='Your Name',
    packages=find_packages(exclude=['tests', 'tests.*']),
    python_requires='>=3.11',
    install_requires=[
        'python-dotenv>=1.0.0',
        'PyYAML>=6.0',
        'click>=8.1.7',
        'requests>=2.31.0',
        'pydantic>=2.5',
        'python-docx>=1.1.0',
    ],
    extras_require={
        'test': ['pytest>=7.4'],
    },
    entry_points={
        'console_scripts': ['fihris=fihris.cli:cli'],
    },
)
