"""
assetsync: synchronize S3 asset sources with a local index
"""

import argparse
import getpass
import logging
import sys
from pathlib import Path

import uvicorn
from uvicorn.config import LOGGING_CONFIG

from assetsync.config import ENV_PREFIX, get_settings, get_source, load_sources
from assetsync.elastic.connection import elastic_connection
from assetsync.indexing import run_index
from assetsync.objectstorage.s3bucket import CredentialsRejected, get_bucket_list
from assetsync.objectstorage.s3client import connect_s3
from assetsync.sources import open_asset_source
from assetsync.systemdata.elastic_store import ElasticMetadataStore
from assetsync.systemdata.manage import create_systemdata, delete_systemdata
from assetsync.transforms import LocalTransformCache


def run(args):
    settings = get_settings()
    sources = load_sources()
    logging.info(f"Starting server at port {args.port}, debug={not args.nodebug}")
    if not sources:
        logging.warning(f"No sources configured, create {settings.sources_file} to add asset sources")
    logging.info(
        "To change server config, create an .env file and/or set environment parameters,\n"
        f"{' ' * 26}see assetsync/config.py for more information.\n"
        f"{' ' * 26}You can run `python -m assetsync config` to show the current settings\n"
    )
    log_config = "logging.yml" if Path("logging.yml").exists() else LOGGING_CONFIG
    uvicorn.run("assetsync.api:app", host="0.0.0.0", reload=not args.nodebug, port=int(args.port), log_config=log_config)


def list_buckets(args):
    secret = args.secret or getpass.getpass("Secret access key: ")
    try:
        buckets = get_bucket_list(connect_s3(args.key_id, secret, args.location))
    except CredentialsRejected as e:
        logging.error(str(e))
        sys.exit(1)
    for bucket in buckets:
        print(f"{bucket.bucket}\t{bucket.location}\t{bucket.url_prefix}")


def index_source(args):
    source = get_source(args.source_id)
    store = ElasticMetadataStore()
    create_systemdata(store.elastic)
    src = open_asset_source(source, store, LocalTransformCache(store))
    result = run_index(src, args.session)
    print(f"Indexed {result.total} files of source {source.id} ({source.name})")
    for folder_id, path in result.missing_folders.items():
        print(f"Folder {path!r} ({folder_id}) is no longer in the bucket")


def migrate_systemdata(args) -> None:
    settings = get_settings()
    try:
        elastic = elastic_connection()
    except ConnectionError:
        logging.error(f"Cannot connect to elasticsearch server {settings.elastic_host}")
        sys.exit(1)
    if args.recreate:
        delete_systemdata(elastic)
    for index in create_systemdata(elastic):
        print(f"Created {index}")


def show_config(args):
    settings = get_settings()
    print(f"# Reading settings from environment and {settings.env_file}")
    for fieldname, fieldinfo in type(settings).model_fields.items():
        value = getattr(settings, fieldname)
        if doc := fieldinfo.description:
            print(f"# {doc}")
        if value is None:
            print(f"#{ENV_PREFIX}{fieldname}=\n")
        elif fieldname == "elastic_password":
            print(f"{ENV_PREFIX}{fieldname}=********\n")
        else:
            print(f"{ENV_PREFIX}{fieldname}={value}\n")


def main():
    parser = argparse.ArgumentParser(description=__doc__, prog="python -m assetsync")

    subparsers = parser.add_subparsers(dest="action", title="action", help="Action to perform:", required=True)
    p = subparsers.add_parser("run", help="Run the backend API in development mode")
    p.add_argument(
        "--no-debug",
        action="store_true",
        dest="nodebug",
        help="Disable debug mode (useful for testing downstream clients)",
    )
    p.add_argument("-p", "--port", help="Port", default=5000)
    p.set_defaults(func=run)

    p = subparsers.add_parser("buckets", help="List the buckets that can be accessed with a key")
    p.add_argument("key_id", help="Access key id")
    p.add_argument("--secret", help="Secret access key (prompted for if not given)")
    p.add_argument("--location", help="Bucket location, e.g. EU (default: US)")
    p.set_defaults(func=list_buckets)

    p = subparsers.add_parser("index", help="Index a configured source in a single run")
    p.add_argument("source_id", type=int, help="Id of the source in the sources file")
    p.add_argument("--session", help="Session id (default: a new random id)")
    p.add_argument("-v", "--verbose", action="store_true", help="Log every indexed file")
    p.set_defaults(func=index_source)

    p = subparsers.add_parser("migrate", help="Create the system indices that do not exist yet")
    p.add_argument(
        "--recreate",
        action="store_true",
        help="DANGER: delete all system indices (folders, files, index sessions) before creating them",
    )
    p.set_defaults(func=migrate_systemdata)

    p = subparsers.add_parser("config", help="Show the current settings in .env format")
    p.set_defaults(func=show_config)

    args = parser.parse_args()

    level = logging.DEBUG if getattr(args, "verbose", False) else logging.INFO
    logging.basicConfig(format="[%(levelname)-7s:%(name)-15s] %(message)s", level=level)
    logging.getLogger("elasticsearch").setLevel(logging.WARNING)
    logging.getLogger("elastic_transport").setLevel(logging.WARNING)
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("PIL").setLevel(logging.WARNING)

    args.func(args)


if __name__ == "__main__":
    main()
