import os

from setuptools import setup, find_packages

version_file = os.path.join(os.path.dirname(__file__), "pegweave", "version.py",)
with open(version_file, "r") as f:
    exec(f.read())

setup(
    name="pegweave",
    version=__version__,  # noqa: F821
    packages=find_packages(include=["pegweave", "pegweave.*"]),
    include_package_data=True,
    description=(
        "A PEG parsing runtime: backtracking context, furthest-failure "
        "diagnostics and rule invocation hooks."
    ),
    license="GPLv2",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: GNU General Public License v2 (GPLv2)",
        "Operating System :: POSIX :: Linux",
        "Operating System :: Microsoft :: Windows",
        "Operating System :: MacOS",
        "Programming Language :: Python :: 3",
    ],
    keywords="PEG parser",
    python_requires=">=3.7",
    install_requires=[],
    extras_require={"test": ["pytest", "hypothesis"]},
    entry_points={"console_scripts": []},
)
