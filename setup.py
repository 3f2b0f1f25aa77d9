#!/usr/bin/env python
# -*- coding: utf-8 -*-
from setuptools import find_packages, setup

setup(
    name="netperf_operator",
    version="0.1.0",
    description="Kubernetes operator running one-shot netperf throughput benchmarks",
    url="https://github.com/awslabs/benchmark-ai",
    package_dir={"": "src"},
    packages=find_packages("src"),
    include_package_data=True,
    python_requires=">=3.7",
    install_requires=["kubernetes", "ConfigArgParse", "dataclasses-json", "urllib3"],
    extras_require={"test": ["pytest", "pytest-mock"]},
    entry_points={"console_scripts": ["bai-netperf-operator=bai_netperf_operator.__main__:main"]},
)
