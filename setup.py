"""Installing with setuptools."""
import setuptools

with open("README.md", "r", encoding="utf8") as fh:
    long_description = fh.read()

setuptools.setup(
    name="tf-fixedpoint",
    version="0.1.0",
    packages=setuptools.find_packages(include=["tf_fixedpoint", "tf_fixedpoint.*"]),
    python_requires=">=3.8",
    install_requires=[
        "tensorflow >=2.9.1",
        "numpy >=1.22.4",
        "pyyaml >=6.0",
    ],
    extras_require={
        "test": ["pytest"],
    },
    license="Apache License 2.0",
    description="Fixed-point tensor arithmetic for secret-shared computation.",
    long_description=long_description,
    long_description_content_type="text/markdown",
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: Apache Software License",
        "Development Status :: 2 - Pre-Alpha",
        "Operating System :: OS Independent",
        "Topic :: Scientific/Engineering :: Mathematics",
        "Topic :: Security :: Cryptography",
    ],
)
