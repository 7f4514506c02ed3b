from setuptools import find_packages, setup

setup(
    name="telemetry-relay",
    version="1.0.0",
    description="UDP telemetry ingest, peer tracking and websocket fan-out",
    packages=find_packages(include=["telemetry_relay", "telemetry_relay.*"]),
    include_package_data=True,
    package_data={
        "telemetry_relay": ["schemas/*.json"],
    },
    python_requires=">=3.10",
    install_requires=[
        "fastapi",
        "jsonschema",
        "psutil",
        "pydantic",
        "pydantic-settings",
        "python-dotenv",
        "uvicorn",
        "websockets>=13",
    ],
    extras_require={
        "test": ["pytest", "httpx"],
    },
    entry_points={
        "console_scripts": [
            "telemetry-relay=telemetry_relay.relay:main",
            "telemetry-relay-client=telemetry_relay.client.stream_client:main",
        ],
    },
)
