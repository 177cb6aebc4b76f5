from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

with open("requirements.txt", "r", encoding="utf-8") as f:
    requirements = [line.strip() for line in f if line.strip() and not line.startswith("#")]

setup(
    name="wirediff",
    version="0.1.0",
    description="wirediff: differential compatibility testing for MongoDB-wire servers",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Database",
        "Topic :: Software Development :: Testing",
    ],
    python_requires=">=3.11",
    install_requires=requirements,
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "wirediff-corpus=wirediff.tools.corpus_runner:main",
            "wirediff-gate=wirediff.tools.gate_automation:main",
            "wirediff-readiness=wirediff.tools.readiness_report:main",
        ],
    },
    include_package_data=True,
)
