from setuptools import setup, find_packages

setup(
    name="chatproxy",
    version="0.1.0",
    packages=find_packages(include=["chatproxy", "chatproxy.*"]),
    python_requires=">=3.11",
    install_requires=[
        "fastapi>=0.110",
        "starlette>=0.36",
        "uvicorn>=0.27",
        "httpx>=0.27",
        "pydantic>=2.5",
        "pydantic-settings>=2.2",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
            "respx>=0.21",
        ],
    },
    entry_points={
        "console_scripts": [
            "chatproxy=chatproxy.app.main:run",
        ],
    },
)
