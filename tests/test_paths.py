import pytest

from assetsync.paths import (
    InvalidPathError,
    clean_asset_name,
    get_extension,
    is_image_extension,
    parent_folder_path,
    path_prefix,
    split_uri,
    to_relative_path,
    to_remote_key,
)
from tests.conftest import make_source


def test_prefix():
    assert path_prefix(make_source(subfolder="").settings) == ""
    assert path_prefix(make_source(subfolder="site").settings) == "site/"
    assert path_prefix(make_source(subfolder="site/").settings) == "site/"
    assert path_prefix(make_source(subfolder="a/b").settings) == "a/b/"


def test_keys_and_relative_paths():
    settings = make_source(subfolder="site").settings
    assert to_remote_key("a/b/image.jpg", settings) == "site/a/b/image.jpg"
    assert to_relative_path("site/a/b/image.jpg", settings) == "a/b/image.jpg"
    assert to_relative_path("site/a/", settings) == "a/"
    assert to_relative_path(to_remote_key("x.png", settings), settings) == "x.png"

    with pytest.raises(InvalidPathError):
        to_relative_path("other/image.jpg", settings)
    with pytest.raises(InvalidPathError):
        to_relative_path("site/", settings)

    unprefixed = make_source(subfolder="").settings
    assert to_remote_key("image.jpg", unprefixed) == "image.jpg"
    assert to_relative_path("a/image.jpg", unprefixed) == "a/image.jpg"


def test_parent_folder_path():
    assert parent_folder_path("a/b/c/") == "a/b/"
    assert parent_folder_path("a/b/") == "a/"
    assert parent_folder_path("a/") == ""


def test_split_uri():
    assert split_uri("a/b/c.jpg") == ("a/b/", "c.jpg")
    assert split_uri("c.jpg") == ("", "c.jpg")


def test_extensions():
    assert get_extension("Photo.JPG") == "jpg"
    assert get_extension("archive.tar.gz") == "gz"
    assert get_extension("README") == ""
    assert is_image_extension("x.PNG")
    assert not is_image_extension("x.pdf")


def test_clean_asset_name():
    assert clean_asset_name("  my   photo.jpg ") == "my photo.jpg"
    assert clean_asset_name("a/b\\c?.jpg") == "abc.jpg"
    assert clean_asset_name(".hidden.png") == "hidden.png"
