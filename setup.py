from setuptools import setup, find_packages

setup(
    name="ipc_events",
    version="0.1.0",
    description="Named, structured events over process message channels",
    author="ipc_events contributors",
    packages=find_packages(include=["ipc_events", "ipc_events.*"]),
    install_requires=[
        "pyzmq>=24.0.0",
        "opentelemetry-api>=1.14.0",
        "opentelemetry-sdk>=1.14.0",
        "opentelemetry-exporter-otlp>=1.14.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "pytest-benchmark",
            "pytest-cov",
            "black",
            "isort",
            "pylint",
        ],
        "test": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "pytest-benchmark",
        ],
    },
    python_requires=">=3.9",
)
