from setuptools import setup, find_packages

setup(
    name="cmd2mqtt",
    version="0.1.0",
    description="Run shell commands locally or over SSH and publish their output to MQTT",
    author="",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    python_requires=">=3.8",
    install_requires=[
        "paramiko>=3.4.0",
        "pyyaml>=6.0.1",
        "click>=8.1.7",
        "paho-mqtt>=2.0.0",
        "structlog>=23.1.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "cmd2mqtt=cmd2mqtt.cli:main",
        ],
    },
    include_package_data=True,
)
