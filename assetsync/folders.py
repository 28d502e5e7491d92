"""
Derive the folder structure of a source from the flat list of keys in its bucket.

Object stores have no real directories. A key like a/b/c/image.jpg implies the folders a/, a/b/ and a/b/c/,
even if there is no (empty) marker object for any of them. Keys ending in / are explicit folder markers.
"""

import logging
import re
from collections import deque
from dataclasses import dataclass, field
from typing import Iterable, Iterator

from assetsync.models import RemoteObject, SourceSettings
from assetsync.paths import InvalidPathError, to_relative_path

# System files that are never indexed
INDEX_SKIP_ITEMS_PATTERN = re.compile(r".*(Thumbs\.db|__MACOSX|__MACOSX/|__MACOSX/.*|\.DS_STORE)$", re.IGNORECASE)


@dataclass
class FolderTreeNode:
    path: str
    parent: str | None
    children: list[str] = field(default_factory=list)


class FolderTree:
    """
    Arena of folder nodes indexed by their (slash-terminated) path. The top folder has path "".
    Adding a folder also adds all its ancestors, so the tree never has gaps.
    """

    def __init__(self):
        self.nodes: dict[str, FolderTreeNode] = {"": FolderTreeNode(path="", parent=None)}

    def add(self, path: str) -> None:
        segments = path.rstrip("/").split("/")
        parent = ""
        for segment in segments:
            current = f"{parent}{segment}/"
            if current not in self.nodes:
                self.nodes[current] = FolderTreeNode(path=current, parent=parent)
                self.nodes[parent].children.append(current)
            parent = current

    def __contains__(self, path: str) -> bool:
        return path in self.nodes

    def __len__(self) -> int:
        return len(self.nodes) - 1

    def paths(self) -> list[str]:
        """All folder paths except the top folder, parents before their children"""
        result = []
        todo = deque(self.nodes[""].children)
        while todo:
            path = todo.popleft()
            result.append(path)
            todo.extend(self.nodes[path].children)
        return result


def is_private(path: str) -> bool:
    """
    Does this path lie inside a folder starting with an underscore (at any depth)?
    Only folder segments count, a file can be named _something.
    """
    folders = path.split("/")[:-1]
    return any(segment.startswith("_") for segment in folders)


class FolderReconciler:
    """
    Consumes a listing one object at a time, building the folder tree and
    returning the relative path of every object that should be indexed.
    """

    def __init__(self, settings: SourceSettings, skip_pattern: re.Pattern | None = INDEX_SKIP_ITEMS_PATTERN):
        self.settings = settings
        self.skip_pattern = skip_pattern
        self.tree = FolderTree()

    def add(self, obj: RemoteObject) -> str | None:
        try:
            path = to_relative_path(obj.key, self.settings)
        except InvalidPathError as e:
            logging.debug(f"Skipping {obj.key}: {e}")
            return None

        if is_private(path):
            return None
        if self.skip_pattern is not None and self.skip_pattern.match(path):
            return None

        if path.endswith("/"):
            self.tree.add(path)
            return None

        if "/" in path:
            self.tree.add(path.rsplit("/", 1)[0] + "/")
        return path


@dataclass
class Reconciliation:
    folders: list[str]
    entries: list[RemoteObject]


def reconcile(
    objects: Iterable[RemoteObject],
    settings: SourceSettings,
    skip_pattern: re.Pattern | None = INDEX_SKIP_ITEMS_PATTERN,
) -> Reconciliation:
    """
    Reconcile a complete listing. The entries keep the order of the listing, with their keys
    replaced by the path relative to the source prefix.
    """
    reconciler = FolderReconciler(settings, skip_pattern)
    entries = list(_reconciled_entries(reconciler, objects))
    return Reconciliation(folders=reconciler.tree.paths(), entries=entries)


def _reconciled_entries(reconciler: FolderReconciler, objects: Iterable[RemoteObject]) -> Iterator[RemoteObject]:
    for obj in objects:
        path = reconciler.add(obj)
        if path is not None:
            yield obj.model_copy(update={"key": path})
