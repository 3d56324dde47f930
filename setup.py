import os
from setuptools import setup, find_packages

requirements = []
with open("requirements.txt") as f:
    requirements = f.read().splitlines()


def read(fname):
    return open(os.path.join(os.path.dirname(__file__), fname)).read()


setup(
    name="fix-plugin-azurerm",
    version="0.1.0",
    description="Fix Azure Resource Manager resource handlers",
    license="Apache 2.0",
    packages=find_packages(exclude=["test", "test.*"]),
    long_description=read("README.md"),
    long_description_content_type="text/markdown",
    entry_points={
        "console_scripts": [
            "fix-azurerm = fix_plugin_azurerm.cli:main",
        ],
    },
    include_package_data=True,
    zip_safe=False,
    python_requires=">=3.9",
    install_requires=requirements,
    extras_require={"test": ["pytest", "hypothesis"]},
    tests_require=["pytest", "hypothesis"],
    classifiers=[
        # Current project status
        "Development Status :: 4 - Beta",
        # Audience
        "Intended Audience :: System Administrators",
        "Intended Audience :: Information Technology",
        # License information
        "License :: OSI Approved :: Apache Software License",
        # Supported python versions
        "Programming Language :: Python :: 3.9",
        # Supported OS's
        "Operating System :: POSIX :: Linux",
        "Operating System :: Unix",
        # Extra metadata
        "Environment :: Console",
        "Natural Language :: English",
        "Topic :: Utilities",
    ],
    keywords="cloud azure infrastructure",
)
