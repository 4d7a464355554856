import re

import pytest

from components.mediastorage.keys import (
    generate_safe_filename,
    key_from_reference,
    owns_key,
    path_key,
    require_owner,
)
from components.mediastorage.policy import AUDIO, FILE, IMAGE, MB, VIDEO
from components.objectstore.errors import ErrorKind, StorageError


def test_safe_filename_is_opaque_and_keeps_extension():
    name = generate_safe_filename("My Holiday Photo.PNG", "image/png", now_ms=1_700_000_000_000)
    assert re.fullmatch(r"[0-9a-z]+-[0-9a-f]{8}-image\.png", name)
    assert "Holiday" not in name


def test_safe_filename_suffix_follows_mimetype():
    assert generate_safe_filename("clip.webm", "video/webm").endswith("-video.webm")
    assert generate_safe_filename("report.csv", "text/csv").endswith("-file.csv")
    assert generate_safe_filename("noext", "audio/mpeg").endswith("-file")


def test_safe_filenames_do_not_collide():
    names = {generate_safe_filename("a.png", "image/png", now_ms=42) for _ in range(50)}
    assert len(names) == 50


@pytest.mark.parametrize(
    "owner,key,expected",
    [
        ("alice", "alice/x.png", True),
        ("alice", "alicex/y.png", False),
        ("alice", "bob/alice/x.png", False),
        ("alice", "", False),
        ("", "alice/x.png", False),
    ],
)
def test_owns_key_is_a_strict_prefix_check(owner, key, expected):
    assert owns_key(owner, key) is expected


def test_require_owner_raises_access_denied():
    with pytest.raises(StorageError) as ei:
        require_owner("alice", "bob/x.png")
    assert ei.value.kind is ErrorKind.ACCESS_DENIED
    assert ei.value.status_code == 403


def test_key_from_reference_accepts_urls_and_bare_keys():
    assert key_from_reference("https://cdn.korner.lol/alice/a%20b.png") == "alice/a b.png"
    assert key_from_reference("alice/x.png") == "alice/x.png"
    assert key_from_reference("/alice/x.png") == "alice/x.png"


@pytest.mark.parametrize("ref", ["", "ftp://host/alice/x.png", "https://cdn.korner.lol/", "https:///alice/x"])
def test_key_from_reference_rejects_bad_input(ref):
    with pytest.raises(StorageError) as ei:
        key_from_reference(ref)
    assert ei.value.kind is ErrorKind.BAD_REQUEST
    assert ei.value.code == "INVALID_INPUT"


def test_path_key_validates_filename():
    assert path_key("alice", "1a2b-photo.webp") == "alice/1a2b-photo.webp"
    for bad in ("../secret", "a b.png", "фото.png", ""):
        with pytest.raises(StorageError):
            path_key("alice", bad)


def test_media_class_ceilings():
    assert IMAGE.max_bytes == 5 * MB
    assert AUDIO.max_bytes == VIDEO.max_bytes == 100 * MB
    assert FILE.max_bytes == 15 * MB


def test_validate_orders_size_before_type():
    IMAGE.validate(5 * MB, "image/png")
    with pytest.raises(StorageError) as ei:
        IMAGE.validate(5 * MB + 1, "image/bmp")
    assert ei.value.kind is ErrorKind.PAYLOAD_TOO_LARGE
    assert ei.value.status_code == 413
    assert ei.value.details == {"limit_bytes": 5 * MB, "size_bytes": 5 * MB + 1}

    with pytest.raises(StorageError) as ei:
        FILE.validate(10, "application/zip")
    assert ei.value.kind is ErrorKind.UNSUPPORTED_MEDIA_TYPE
    assert ei.value.status_code == 415

    with pytest.raises(StorageError) as ei:
        AUDIO.validate(0, "audio/mpeg")
    assert ei.value.kind is ErrorKind.BAD_REQUEST
