import io
import os

import pytest
from starlette.datastructures import Headers, UploadFile

from channel_landing.core.config import settings
from channel_landing.core.errors import ValidationFailed
from channel_landing.models.channel import Channel, ChannelStatus
from channel_landing.schemas.channel import ChannelUpdate
from channel_landing.services.channel_cache import ChannelCache
from channel_landing.services.channel_service import ChannelService
from channel_landing.services.upload_service import LogoStorage, sanitize_filename, sniff_image_type

PNG_HEADER = b"\x89PNG\r\n\x1a\n"


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def _upload(content=PNG_HEADER + b"data", filename="logo.png", content_type="image/png"):
    return UploadFile(
        file=io.BytesIO(content),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


def test_cache_expires_after_ttl():
    clock = FakeClock()
    cache = ChannelCache(ttl_seconds=60, clock=clock)
    cache.set("u1", "value")
    assert cache.get("u1") == "value"

    clock.now += 59
    assert cache.get("u1") == "value"
    clock.now += 1
    assert cache.get("u1") is None
    assert len(cache) == 0


def test_cache_invalidate_and_clear():
    cache = ChannelCache(ttl_seconds=60)
    cache.set("a", 1)
    cache.set("b", 2)
    cache.invalidate("a")
    assert cache.get("a") is None
    assert cache.get("b") == 2
    cache.clear()
    assert cache.get("b") is None


def test_cache_disabled_with_zero_ttl():
    cache = ChannelCache(ttl_seconds=0)
    cache.set("a", 1)
    assert cache.get("a") is None
    assert not cache.enabled


@pytest.mark.parametrize("name, expected", [
    ("logo.png", "logo.png"),
    ("../../etc/passwd", "passwd"),
    ("my logo (1).png", "my_logo_1_.png"),
    ("", "logo"),
    (None, "logo"),
])
def test_sanitize_filename(name, expected):
    assert sanitize_filename(name) == expected


@pytest.mark.asyncio
async def test_logo_storage_save_and_delete(tmp_path):
    storage = LogoStorage(upload_dir=str(tmp_path), url_prefix="/uploads")
    url = await storage.save(_upload())

    assert url.startswith("/uploads/logos/")
    assert url.endswith("-logo.png")
    path = storage.path_for(url)
    assert path.startswith(str(tmp_path))
    with open(path, "rb") as f:
        assert f.read() == PNG_HEADER + b"data"

    assert await storage.delete(url) is True
    assert not os.path.exists(path)


@pytest.mark.asyncio
async def test_logo_storage_delete_is_best_effort(tmp_path):
    storage = LogoStorage(upload_dir=str(tmp_path), url_prefix="/uploads")
    # missing file
    assert await storage.delete("/uploads/logos/missing.png") is False
    # outside the upload prefix or escaping the directory
    assert await storage.delete("https://cdn.example/logo.png") is False
    assert await storage.delete("/uploads/../secret.txt") is False
    assert await storage.delete(None) is False


@pytest.mark.asyncio
async def test_logo_storage_rejects_non_images(tmp_path):
    storage = LogoStorage(upload_dir=str(tmp_path), url_prefix="/uploads")
    with pytest.raises(ValidationFailed):
        await storage.save(_upload(content_type="application/pdf"))
    with pytest.raises(ValidationFailed):
        await storage.save(_upload(content=b""))
    assert not os.path.exists(os.path.join(tmp_path, "logos"))


@pytest.mark.parametrize("content, expected", [
    (PNG_HEADER + b"data", "image/png"),
    (b"\xff\xd8\xff\xe0data", "image/jpeg"),
    (b"GIF89adata", "image/gif"),
    (b"RIFF\x00\x00\x00\x00WEBPVP8 ", "image/webp"),
    (b"<svg xmlns='http://www.w3.org/2000/svg'/>", None),
    (b"<script>alert(1)</script>", None),
])
def test_sniff_image_type(content, expected):
    assert sniff_image_type(content) == expected


@pytest.mark.asyncio
async def test_logo_storage_ignores_client_extension(tmp_path):
    storage = LogoStorage(upload_dir=str(tmp_path), url_prefix="/uploads")
    url = await storage.save(_upload(filename="evil.html"))
    assert url.endswith("-evil.png")

    url = await storage.save(_upload(content=b"\xff\xd8\xffdata", filename="photo", content_type="image/jpg"))
    assert url.endswith("-photo.jpg")


@pytest.mark.asyncio
async def test_logo_storage_rejects_html_declared_as_image(tmp_path):
    storage = LogoStorage(upload_dir=str(tmp_path), url_prefix="/uploads")
    with pytest.raises(ValidationFailed):
        await storage.save(_upload(content=b"<script>fetch('/api/users')</script>", filename="evil.html"))
    # declared jpeg, actually png
    with pytest.raises(ValidationFailed):
        await storage.save(_upload(content_type="image/jpeg"))
    assert not os.path.exists(os.path.join(tmp_path, "logos"))


@pytest.mark.asyncio
async def test_logo_storage_rejects_svg(tmp_path):
    storage = LogoStorage(upload_dir=str(tmp_path), url_prefix="/uploads")
    svg = b"<svg xmlns='http://www.w3.org/2000/svg'><script>alert(1)</script></svg>"
    with pytest.raises(ValidationFailed):
        await storage.save(_upload(content=svg, filename="logo.svg", content_type="image/svg+xml"))


@pytest.mark.asyncio
async def test_logo_storage_enforces_size_limit(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "MAX_LOGO_BYTES", 16)
    storage = LogoStorage(upload_dir=str(tmp_path), url_prefix="/uploads")

    assert await storage.save(_upload(content=PNG_HEADER + b"x" * 8))
    with pytest.raises(ValidationFailed) as exc_info:
        await storage.save(_upload(content=PNG_HEADER + b"x" * 9))
    assert exc_info.value.details[0]["field"] == "logo"


class FailingCommitSession:
    """Stands in for an AsyncSession whose commit always fails."""

    def __init__(self):
        self.rolled_back = False

    async def commit(self):
        raise RuntimeError("database is locked")

    async def rollback(self):
        self.rolled_back = True

    async def refresh(self, obj):
        pass


def _channel_service(tmp_path, monkeypatch, channel):
    service = ChannelService(storage=LogoStorage(upload_dir=str(tmp_path), url_prefix="/uploads"))

    async def get_owned(db, channel_id, user_id):
        return channel

    monkeypatch.setattr(service, "get_owned", get_owned)
    return service


@pytest.mark.asyncio
async def test_failed_update_removes_new_logo(tmp_path, monkeypatch):
    storage = LogoStorage(upload_dir=str(tmp_path), url_prefix="/uploads")
    old_logo = await storage.save(_upload(filename="old.png"))
    channel = Channel(id=1, uuid="u", name="Alpha", logo=old_logo, status=ChannelStatus.ACTIVE)
    service = _channel_service(tmp_path, monkeypatch, channel)
    db = FailingCommitSession()

    with pytest.raises(RuntimeError):
        await service.update(db, 1, 1, ChannelUpdate(), _upload(filename="new.png"))

    assert db.rolled_back
    assert os.listdir(os.path.join(tmp_path, "logos")) == [os.path.basename(old_logo)]


@pytest.mark.asyncio
async def test_failed_soft_delete_keeps_logo(tmp_path, monkeypatch):
    storage = LogoStorage(upload_dir=str(tmp_path), url_prefix="/uploads")
    logo = await storage.save(_upload())
    channel = Channel(id=1, uuid="u", name="Alpha", logo=logo, status=ChannelStatus.ACTIVE)
    service = _channel_service(tmp_path, monkeypatch, channel)

    with pytest.raises(RuntimeError):
        await service.soft_delete(FailingCommitSession(), 1, 1)

    assert os.path.exists(storage.path_for(logo))
