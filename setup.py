"""
Setup configuration for neural_hive_chaos.

Operator que orquestra experimentos de chaos (ChaosExperiment) sobre Chaos Mesh
e Kubernetes Jobs.
"""

from setuptools import setup, find_packages

setup(
    name="neural_hive_chaos",
    version="0.1.0",
    description="Neural Hive-Mind Chaos Experiment Operator",
    author="Neural Hive Team",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    python_requires=">=3.11",
    install_requires=[
        "kopf>=1.37.0",
        "kubernetes-asyncio>=29.0.0",
        "structlog>=23.1.0",
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        "tenacity>=8.2.0",
        "prometheus-client>=0.17.0",
        "opentelemetry-api>=1.21.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.21.0",
            "pytest-mock>=3.11.0",
            "pytest-cov>=4.1.0",
            "black>=23.7.0",
            "mypy>=1.4.0",
        ]
    },
    entry_points={
        "console_scripts": [
            "neural-hive-chaos-operator=neural_hive_chaos.operator.main:run",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
