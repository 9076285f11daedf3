from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol
from urllib.parse import quote, urljoin

from mediaproc.core.config import SOURCE_LOADERS, Settings
from mediaproc.core.errors import ConfigurationError, ErrorCode
from mediaproc.imaging.uri import is_absolute_url

ONLINE_MEDIA_EXTENSIONS = frozenset({"youtube", "vimeo"})
ONLINE_MEDIA_PREVIEW_MARKER = "/typo3temp/assets/online_media"


@dataclass(frozen=True, slots=True)
class SourceFile:
    identifier: str
    mime_type: str
    extension: str = ""
    sha1: str | None = None
    public_url: str | None = None
    storage_public: bool = True
    width: int | None = None
    height: int | None = None

    @property
    def is_online_media(self) -> bool:
        return self.extension.lower() in ONLINE_MEDIA_EXTENSIONS


class SourceResolver(Protocol):
    def get_source(self, file: SourceFile) -> str: ...


class OnlineMediaHelper(Protocol):
    def get_preview_image(self, file: SourceFile) -> str: ...


@dataclass(frozen=True, slots=True)
class UriSource:
    base_uri: str = ""

    def get_source(self, file: SourceFile) -> str:
        url = (file.public_url or "").strip()
        if not url:
            raise ValueError(f"file has no public url: {file.identifier}")
        if is_absolute_url(url):
            return url
        if not self.base_uri:
            raise ValueError(f"relative public url needs a source uri: {url}")
        return urljoin(self.base_uri.rstrip("/") + "/", url.lstrip("/"))


@dataclass(frozen=True, slots=True)
class LocalSource:
    def get_source(self, file: SourceFile) -> str:
        identifier = (file.identifier or "").strip().lstrip("/")
        if not identifier:
            raise ValueError("file identifier is required")
        return "local:///" + quote(identifier, safe="/")


@dataclass(frozen=True, slots=True)
class OnlineMediaPreviewSource:
    """Points imgproxy at the preview image generated locally for an embed.

    The helper returns the preview's path on the web server; everything from
    ``/typo3temp/assets/online_media`` onwards is appended to ``base_uri``.
    """

    base_uri: str
    helper: OnlineMediaHelper

    def get_source(self, file: SourceFile) -> str:
        preview = self.helper.get_preview_image(file)
        idx = preview.find(ONLINE_MEDIA_PREVIEW_MARKER)
        if idx < 0:
            raise ValueError(f"unexpected online media preview path: {preview}")
        return self.base_uri.rstrip("/") + preview[idx:]


def build_source_resolver(settings: Settings) -> SourceResolver:
    loader = (settings.source_loader or "uri").strip().lower()
    if loader == "uri":
        return UriSource(base_uri=settings.source_uri)
    if loader == "local":
        return LocalSource()
    raise ConfigurationError(
        ErrorCode.UNSUPPORTED_SOURCE_LOADER,
        f"Unsupported source loader: {loader}",
        {"allowed": list(SOURCE_LOADERS)},
    )
