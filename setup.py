from setuptools import find_packages, setup

setup(
    name="narrator",
    version="0.1.0",
    packages=find_packages(exclude=["narrator.tests", "narrator.tests.*"]),
    python_requires=">=3.11",
    install_requires=[
        "fastapi>=0.110",
        "uvicorn>=0.27",
        "pydantic>=2.5",
        "aiohttp>=3.9",
        "python-dotenv>=1.0",
        "PyYAML>=6.0",
        "redis>=5.0",
        "beautifulsoup4>=4.12",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
            "httpx>=0.27",
        ],
    },
    include_package_data=True,
    description="Document narration backend with cached text-to-speech and read-along playback",
    entry_points={
        "console_scripts": [
            "narrator-serve=narrator.bootloader:main",
            "narrator-pregenerate=narrator.pregenerate:run",
        ],
    },
)
