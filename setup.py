"""Setup script for Spotify playlist deduplication."""

from setuptools import setup, find_namespace_packages

setup(
    name="playlistdedup",
    version="0.1.0",
    description="Find and remove duplicate items in Spotify playlists",
    author="Micah Alpern",
    author_email="malpern@gmail.com",
    package_dir={"": "src"},
    packages=find_namespace_packages(where="src"),
    python_requires=">=3.8",
    install_requires=[
        "requests>=2.25.0",
        "python-dotenv>=0.19.0",
        "tqdm>=4.0.0",
    ],
    extras_require={
        "test": ["pytest>=7.0.0"],
    },
    entry_points={
        "console_scripts": [
            "playlistdedup=playlistdedup.cli:main",
        ]
    },
)
