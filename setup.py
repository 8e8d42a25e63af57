from setuptools import setup, find_packages

'''
Notes: This is the setup file for the apps-ports project.
It defines the package metadata and dependencies required for installation.
'''

setup(
    name = "apps-ports",
    version = "1.0.0",
    description= "apps-ports - Find and stop applications using specific ports",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires='>=3.10',
    install_requires=[
        # Core
        "pydantic>=2",
        "PyYAML",
        "python-dotenv",

        # System
        "psutil",

        # Output
        "rich",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "apps-ports=appsports.cli:main",
        ],
    },
)
