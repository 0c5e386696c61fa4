"""Media-related data models."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Union
from urllib.parse import urlparse, unquote
from urllib.request import url2pathname


@dataclass(frozen=True)
class MediaReference:
    """Handle to a locally addressable video, stored as a URI."""
    uri: str

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "MediaReference":
        return cls(Path(path).expanduser().resolve().as_uri())

    @classmethod
    def parse(cls, value: Union[str, Path, "MediaReference"]) -> "MediaReference":
        """Build a reference from a URI, a plain path or another reference."""
        if isinstance(value, MediaReference):
            return value
        if isinstance(value, Path) or "://" not in value:
            return cls.from_path(value)
        return cls(value)

    @property
    def is_local(self) -> bool:
        return urlparse(self.uri).scheme == "file"

    @property
    def location(self) -> str:
        """Path for local files, the URI itself otherwise (ffmpeg accepts both)."""
        if not self.is_local:
            return self.uri
        return url2pathname(unquote(urlparse(self.uri).path))

    def is_readable(self) -> bool:
        """Whether the referenced video can be opened for reading."""
        if not self.is_local:
            return True
        return os.path.isfile(self.location) and os.access(self.location, os.R_OK)
