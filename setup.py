from setuptools import setup, find_packages

setup(
    name="videoscribe",
    version="0.1.0",
    description="Video to transcript and summary client for a remote Whisper transcription service",
    author="",
    python_requires=">=3.8",
    packages=find_packages(include=["videoscribe", "videoscribe.*"]),
    install_requires=[
        "aiohttp>=3.8.0",
        "ffmpeg-python>=0.2.0",
        "pydantic>=2.0.0",
        "pypubsub>=4.0.3",
        "pyyaml>=6.0.0",
        "rich>=12.5.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "videoscribe=videoscribe.main:main",
        ],
    },
)
