from setuptools import setup, find_packages

with open("README.md", "r") as f:
    long_description = f.read()

setup(
    name="dynip",
    version="0.3.0",
    author="Dominick C. Pastore",
    description="Dynamic address propagation daemon",
    long_description=long_description,
    long_description_content_type="text/markdown",
    license="GPL-3.0-or-later",
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: GNU General Public License v3 or later "
        "(GPLv3+)",
        "Topic :: Internet :: Name Service (DNS)",
    ],

    package_dir={"": "src"},
    packages=find_packages(where="src"),
    install_requires=[
        "requests",
        "netifaces",
        "dnspython>=2.0",
    ],
    python_requires=">=3.8",
    extras_require={
        "docs": ["sphinx"],
        "test": [
            "flake8",
            "pytest",
            "pytest-cov",
            "pytest-mock",
        ]
    },

    entry_points={
        "console_scripts": [
            "dynip=dynip.main:main",
        ],
    },
)
