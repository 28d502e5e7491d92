"""
assetsync Configuration

We read configuration from 2 sources, in order of precedence (higher is more priority)
- Environment variables
- A .env file, either in the current working directory or in a location specified
  by the ASSETSYNC_ENV_FILE environment variable

The asset sources themselves (bucket, credentials, subfolder, ...) are listed in a
JSON file, see sources_file.
"""

import functools
import json
from pathlib import Path
from typing import Annotated, Any

from dotenv import load_dotenv
from pydantic import Field, TypeAdapter, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from assetsync.models import Source

ENV_PREFIX = "assetsync_"

DEFAULT_ALLOWED_EXTENSIONS = [
    # images
    "jpg", "jpeg", "jpe", "png", "gif", "bmp", "webp", "tif", "tiff", "ico", "svg", "psd",
    # documents
    "pdf", "txt", "csv", "rtf", "doc", "docx", "xls", "xlsx", "ppt", "pptx", "odt", "ods", "odp",
    # audio and video
    "mp3", "wav", "ogg", "m4a", "mp4", "mov", "webm", "avi",
    # archives
    "zip", "gz", "tar",
]


class Settings(BaseSettings):
    env_file: Annotated[
        Path,
        Field(
            description="Location of a .env file (if used) relative to working directory",
        ),
    ] = Path(".env")

    elastic_password: Annotated[
        str | None,
        Field(
            description=(
                "Elasticsearch password. This the password for the 'elastic' user when Elastic xpack security is enabled"
            )
        ),
    ] = None

    elastic_host: Annotated[
        str | None,
        Field(
            description=(
                "Elasticsearch host. "
                "Default: https://localhost:9200 if elastic_password is set, http://localhost:9200 otherwise"
            )
        ),
    ] = None

    elastic_verify_ssl: Annotated[
        bool | None,
        Field(
            description=(
                "Elasticsearch verify SSL (only used if elastic_password is set). Default: True unless host is localhost)"
            ),
        ),
    ] = None

    system_index: Annotated[
        str,
        Field(
            description="Prefix of the elasticsearch indices that hold folders, files and index sessions",
        ),
    ] = "assetsync_system"

    storage_path: Annotated[
        Path,
        Field(
            description="Local directory for cached source images and generated transforms",
        ),
    ] = Path("storage")

    sources_file: Annotated[
        Path,
        Field(
            description="JSON file with the list of configured asset sources",
        ),
    ] = Path("sources.json")

    allowed_file_extensions: Annotated[
        list[str],
        Field(
            description="File extensions that may be uploaded to or indexed from a source",
        ),
    ] = DEFAULT_ALLOWED_EXTENSIONS

    max_cached_image_size: Annotated[
        int,
        Field(
            ge=0,
            description=(
                "Largest dimension (in pixels) of locally cached source images. "
                "Larger images are scaled down, 0 means local copies are removed after use"
            ),
        ),
    ] = 2000

    s3_endpoint_url: Annotated[
        str | None,
        Field(
            description="Endpoint of an S3 compatible service (e.g. MinIO). Default: AWS, based on the source location",
        ),
    ] = None

    s3_connect_timeout: Annotated[float, Field(description="Seconds to wait for a connection to the object store")] = 10
    s3_read_timeout: Annotated[float, Field(description="Seconds to wait for a response of the object store")] = 60
    s3_max_attempts: Annotated[
        int,
        Field(ge=1, description="Maximum number of attempts for object store calls that fail with a transient error"),
    ] = 5

    @model_validator(mode="after")
    def set_ssl(self: Any) -> "Settings":
        if not self.elastic_host:
            self.elastic_host = ("https" if self.elastic_password else "http") + "://localhost:9200"
        if not self.elastic_verify_ssl:
            self.elastic_verify_ssl = self.elastic_host not in {
                "http://localhost:9200",
                "https://localhost:9200",
            }
        return self

    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX)


@functools.lru_cache()
def get_settings() -> Settings:
    # Read the .env file into the environment first, so the settings object picks it up
    temp = Settings()
    load_dotenv(temp.env_file, override=False)
    return Settings()


def load_sources(path: Path | None = None) -> dict[int, Source]:
    """
    Read the configured sources from the sources file. Returns an empty dict if the file does not exist.
    """
    path = path or get_settings().sources_file
    if not path.exists():
        return {}
    with path.open() as f:
        sources = TypeAdapter(list[Source]).validate_python(json.load(f))
    return {source.id: source for source in sources}


def get_source(source_id: int) -> Source:
    sources = load_sources()
    if source_id not in sources:
        raise ValueError(f"Source {source_id} is not configured in {get_settings().sources_file}")
    return sources[source_id]


if __name__ == "__main__":
    # Echo the settings
    for k, v in get_settings().model_dump().items():
        print(f"{ENV_PREFIX.upper()}{k.upper()}={v}")
