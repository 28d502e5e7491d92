#!/usr/bin/env python

from setuptools import setup

setup(
    name="assetsync",
    version="0.1.0",
    description="Synchronize S3 asset sources with a local index of folders, files and image transforms",
    packages=["assetsync", "assetsync.api", "assetsync.elastic", "assetsync.objectstorage", "assetsync.systemdata"],
    include_package_data=True,
    zip_safe=False,
    python_requires=">=3.10",
    keywords=["API", "S3", "assets"],
    classifiers=[
        "License :: OSI Approved :: MIT License",
        "Topic :: System :: Archiving :: Mirroring",
    ],
    install_requires=[
        "fastapi",
        "elasticsearch~=8.6",
        "python-multipart",
        "python-dotenv",
        "pydantic>=2",
        "pydantic-settings",
        "uvicorn",
        "boto3",
        "botocore",
        "mypy-boto3-s3",
        "Pillow",
    ],
    extras_require={
        "dev": [
            "pytest",
            "httpx",
            "mypy",
            "flake8",
        ]
    },
    entry_points={
        "console_scripts": [
            "assetsync = assetsync.__main__:main"
        ]
    },
)
