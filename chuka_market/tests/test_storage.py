import pytest

from chuka_market.core.config import Settings
from chuka_market.services.storage.image_storage import (
    ImageUpload,
    LocalImageStorage,
    create_storage,
    object_name,
)


def test_object_name_keeps_extension():
    name = object_name(ImageUpload("Photo.JPG", "image/jpeg", b"x"))

    assert name.endswith(".jpg")
    assert len(name) == 32 + len(".jpg")


def test_object_name_guesses_extension_from_content_type():
    assert object_name(ImageUpload("", "image/png", b"x")).endswith(".png")


@pytest.mark.asyncio
async def test_local_storage_save_and_delete(tmp_path):
    storage = LocalImageStorage(tmp_path / "uploads", "/uploads")

    reference = await storage.save(ImageUpload("a.png", "image/png", b"png-bytes"))

    path = storage.resolve_path(reference)
    assert reference.startswith("/uploads/")
    assert path.read_bytes() == b"png-bytes"

    await storage.delete(reference)
    assert not path.exists()

    # deleting twice is harmless
    await storage.delete(reference)


@pytest.mark.asyncio
async def test_local_storage_ignores_foreign_references(tmp_path):
    storage = LocalImageStorage(tmp_path, "/uploads")
    outside = tmp_path.parent / "keep.txt"
    outside.write_text("keep")

    await storage.delete("https://example.com/a.png")
    await storage.delete("/uploads/../keep.txt")

    assert storage.resolve_path("/uploads/../keep.txt") is None
    assert outside.exists()


def test_create_storage_defaults_to_local(tmp_path):
    settings = Settings(_env_file=None, upload_dir=str(tmp_path / "img"))

    storage = create_storage(settings)

    assert isinstance(storage, LocalImageStorage)
    assert (tmp_path / "img").is_dir()
