"""Storage path generation and backend tests"""
import pytest
from unittest.mock import MagicMock

from botocore.exceptions import ClientError

from services.storage import (
    CACHE_CONTROL,
    LocalStorage,
    R2Storage,
    StorageError,
    generate_image_path,
    is_safe_path,
    sanitize_filename,
)


def test_sanitize_filename_replaces_everything_outside_allowed_set():
    assert sanitize_filename("brake pads (front).JPG") == "brake_pads__front_.JPG"
    assert sanitize_filename("ñame-1.png") == "_ame_1.png"


def test_generate_image_path_layout():
    path = generate_image_path("listings", "user-42", "side view.jpg", timestamp_ms=1700000000123)
    assert path == "listings/user-42/1700000000123_side_view.jpg"


def test_paths_differ_across_milliseconds():
    first = generate_image_path("posts", "u1", "a.jpg", timestamp_ms=1000)
    second = generate_image_path("posts", "u1", "a.jpg", timestamp_ms=1001)
    assert first != second


def test_generate_image_path_uses_current_time():
    path = generate_image_path("posts", "u1", "a.jpg")
    stamp = path.split("/")[2].split("_")[0]
    assert stamp.isdigit() and len(stamp) == 13


@pytest.mark.parametrize("path,expected", [
    ("posts/u1/1_a.jpg", True),
    ("../secret", False),
    ("/abs/path.jpg", False),
    ("posts//a.jpg", False),
    ("posts\\a.jpg", False),
    ("", False),
])
def test_is_safe_path(path, expected):
    assert is_safe_path(path) is expected


def test_r2_put_sets_immutable_cache_headers():
    client = MagicMock()
    storage = R2Storage("acct", "key", "secret", "kisekka-images", "https://images.example.com/", client=client)

    url = storage.put("posts/u1/1_a.webp", b"data", "image/webp")

    assert url == "https://images.example.com/posts/u1/1_a.webp"
    client.put_object.assert_called_once_with(
        Bucket="kisekka-images",
        Key="posts/u1/1_a.webp",
        Body=b"data",
        ContentType="image/webp",
        CacheControl=CACHE_CONTROL,
    )
    assert CACHE_CONTROL == "public, max-age=31536000, immutable"


def test_r2_put_failure_raises_storage_error():
    client = MagicMock()
    client.put_object.side_effect = ClientError({"Error": {"Code": "500", "Message": "boom"}}, "PutObject")
    storage = R2Storage("acct", "key", "secret", "bucket", "https://images.example.com", client=client)

    with pytest.raises(StorageError):
        storage.put("posts/u1/1_a.webp", b"data", "image/webp")


def test_local_storage_writes_file(tmp_path):
    storage = LocalStorage(str(tmp_path), "http://localhost:8000/uploads")
    url = storage.put("shops/u1/1_logo.png", b"png", "image/png")
    assert url == "http://localhost:8000/uploads/shops/u1/1_logo.png"
    assert (tmp_path / "shops/u1/1_logo.png").read_bytes() == b"png"


def test_delete_is_a_logged_no_op(tmp_path, caplog):
    storage = LocalStorage(str(tmp_path), "http://localhost:8000/uploads")
    storage.put("posts/u1/1_a.jpg", b"x", "image/jpeg")

    storage.delete("posts/u1/1_a.jpg")

    assert (tmp_path / "posts/u1/1_a.jpg").exists()
    assert "not supported" in caplog.text
