"""
Index sessions: bring the local folders, file records and cached images of a source in line with its bucket.

Indexing happens in two phases, each step of which is started by an outside scheduler:
- start_index lists the bucket once, storing an index entry (with a sequential offset) for every
  object and making sure every folder exists
- process_index handles the entry at one offset. Steps can be repeated or run in any order; whether
  an image needs to be downloaded again is decided by comparing modification times, so running an
  offset twice gives the same result.
"""

import logging
import uuid

from assetsync.folders import FolderReconciler
from assetsync.models import IndexEntry, IndexStartResult
from assetsync.objectstorage.s3bucket import download_s3_object, scan_s3_objects, stat_s3_object
from assetsync.paths import path_prefix
from assetsync.sources import AssetSource
from assetsync.transforms import image_size


def start_index(src: AssetSource, session_id: str) -> IndexStartResult:
    prefix = path_prefix(src.settings)
    reconciler = FolderReconciler(src.settings)

    total = 0
    for obj in scan_s3_objects(src.s3, src.bucket, prefix):
        uri = reconciler.add(obj)
        if uri is None:
            continue
        src.store.store_index_entry(
            IndexEntry(source_id=src.id, session_id=session_id, offset=total, uri=uri, size=obj.size)
        )
        total += 1

    indexed_folder_ids = {src.ensure_top_folder()}
    for path in reconciler.tree.paths():
        indexed_folder_ids.add(src.ensure_folder_by_full_path(path))

    missing_folders = src.get_missing_folders(indexed_folder_ids)
    logging.info(
        f"Started index session {session_id} for source {src.id}: {total} files, "
        f"{len(reconciler.tree)} folders, {len(missing_folders)} missing folders"
    )
    return IndexStartResult(source_id=src.id, total=total, missing_folders=missing_folders)


def process_index(src: AssetSource, session_id: str, offset: int) -> str | None:
    """
    Process the index entry at this offset. Returns the id of the file record,
    or None if there is no entry at this offset (i.e. the session is done) or the object is gone.
    """
    entry = src.store.get_index_entry(src.id, session_id, offset)
    if entry is None:
        return None

    file = src.index_file(entry.uri)
    if file is None:
        logging.debug(f"Not indexing {entry.uri}")
        return None
    src.store.update_index_entry_record_id(entry.id, file.id)  # type: ignore

    key = src.key(entry.uri)
    info = stat_s3_object(src.s3, src.bucket, key)
    if info is None:
        logging.info(f"{key} disappeared from bucket {src.bucket} during index session {session_id}")
        return None

    file.size = entry.size
    target = src.transforms.image_source_path(file)
    if file.kind == "image" and (file.date_modified != info.last_modified or not src.transforms.has_valid_source(file)):
        logging.debug(f"Downloading {key} to {target}")
        download_s3_object(src.s3, src.bucket, key, target)
        file.width, file.height = image_size(target)
        src.transforms.store_local_source(target, target, info.last_modified)
        src.transforms.queue_source_for_deletion_if_necessary(target)

    file.date_modified = info.last_modified
    file = src.store.store_file(file)
    src.transforms.delete_queued_sources()
    return file.id


def run_index(src: AssetSource, session_id: str | None = None) -> IndexStartResult:
    """
    Run a complete index session in this process: start it, then process every offset in turn
    """
    session_id = session_id or uuid.uuid4().hex
    result = start_index(src, session_id)
    for offset in range(result.total):
        file_id = process_index(src, session_id, offset)
        logging.debug(f"[{offset + 1}/{result.total}] {file_id}")
    logging.info(f"Finished index session {session_id} for source {src.id}")
    return result
