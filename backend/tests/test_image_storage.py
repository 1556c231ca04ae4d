"""
Road Trip Planner Backend — Image Storage Tests
================================================

What we test:
    ✅ validate_images: count, size and content-type rules
    ✅ LocalImageStorage: date-organized paths, extension choice, delete
    ✅ resolve() refuses paths that escape the storage root
    ✅ upload_images: all-or-nothing (stored files removed on partial failure)
    ✅ Cloudinary public ID extraction and missing-credential handling
"""

import re

import pytest

from roadtrip_api.exceptions import ConfigurationError, StorageError, ValidationError
from roadtrip_api.services.image_storage import (
    LOCAL_URL_PREFIX,
    CloudinaryImageStorage,
    ImageStorage,
    LocalImageStorage,
    UploadedImage,
    upload_images,
    validate_images,
)


def _image(content=b"\xff\xd8\xff\xd9", name="photo.jpg", content_type="image/jpeg"):
    return UploadedImage(filename=name, content=content, content_type=content_type)


class FlakyStorage(ImageStorage):
    """Wraps a real store but fails for files named 'bad*'."""

    def __init__(self, inner: LocalImageStorage):
        self.inner = inner

    async def store(self, image):
        if image.filename.startswith("bad"):
            raise StorageError(context={"filename": image.filename})
        return await self.inner.store(image)

    async def delete(self, url):
        await self.inner.delete(url)


class TestValidateImages:
    def test_accepts_valid_batch(self):
        validate_images([_image(), _image(name="b.png", content_type="image/png")])

    def test_too_many(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_images([_image()] * 3, max_files=2)
        assert exc_info.value.message == "Too many files. Maximum is 2 images per upload."

    def test_too_large(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_images([_image(content=b"x" * 2048)], max_size=1024)
        assert "exceeds maximum size" in exc_info.value.message

    def test_not_an_image(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_images([_image(name="a.txt", content_type="text/plain")])
        assert exc_info.value.field == "images"


class TestLocalImageStorage:
    @pytest.mark.asyncio
    async def test_store_and_delete(self, storage, jpeg_bytes):
        url = await storage.store(_image(content=jpeg_bytes))

        assert url.startswith(LOCAL_URL_PREFIX)
        relative = url[len(LOCAL_URL_PREFIX):]
        assert re.fullmatch(r"\d{4}/\d{2}/\d{2}/[0-9a-f-]{36}\.jpg", relative)

        path = storage.resolve(relative)
        assert path is not None
        assert path.read_bytes() == jpeg_bytes

        await storage.delete(url)
        assert storage.resolve(relative) is None

    @pytest.mark.asyncio
    async def test_extension_from_content_type(self, storage):
        url = await storage.store(_image(name="upload", content_type="image/png"))
        assert url.endswith(".png")

    @pytest.mark.asyncio
    async def test_delete_missing_is_silent(self, storage):
        await storage.delete(f"{LOCAL_URL_PREFIX}2020/01/01/nothing.jpg")
        await storage.delete("https://elsewhere.example.com/x.jpg")

    def test_resolve_rejects_traversal(self, storage, tmp_path):
        outside = tmp_path / "secret.txt"
        outside.write_text("nope")
        assert storage.resolve("../secret.txt") is None


class TestUploadImages:
    @pytest.mark.asyncio
    async def test_all_stored_in_order(self, storage):
        urls = await upload_images(storage, [_image(name="a.jpg"), _image(name="b.png", content_type="image/png")])
        assert len(urls) == 2
        assert urls[1].endswith(".png")

    @pytest.mark.asyncio
    async def test_partial_failure_removes_stored_files(self, storage):
        flaky = FlakyStorage(storage)

        with pytest.raises(StorageError):
            await upload_images(flaky, [_image(name="good.jpg"), _image(name="bad.jpg")])

        stored = [p for p in storage.storage_root.rglob("*") if p.is_file()]
        assert stored == []

    @pytest.mark.asyncio
    async def test_empty_batch(self, storage):
        assert await upload_images(storage, []) == []


class TestCloudinaryImageStorage:
    @pytest.mark.parametrize(
        "url, public_id",
        [
            ("https://res.cloudinary.com/demo/image/upload/v1718000000/roadtrips/abc.jpg", "roadtrips/abc"),
            ("https://res.cloudinary.com/demo/image/upload/roadtrips/abc.png", "roadtrips/abc"),
            ("/api/files/2025/06/14/abc.jpg", None),
        ],
    )
    def test_public_id_from_url(self, url, public_id):
        assert CloudinaryImageStorage.public_id_from_url(url) == public_id

    def test_missing_credentials(self, monkeypatch):
        from roadtrip_api.config import settings

        monkeypatch.setattr(settings, "cloudinary_cloud_name", "")
        with pytest.raises(ConfigurationError):
            CloudinaryImageStorage(api_key="", api_secret="")
