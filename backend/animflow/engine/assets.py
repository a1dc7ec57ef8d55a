"""Asset lookup for media nodes."""
import asyncio
from dataclasses import dataclass
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from .errors import AssetNotFoundError


@dataclass(frozen=True)
class AssetInfo:
    asset_id: str
    path: Path
    width: int
    height: int
    mime_type: str | None = None


class LocalAssetStore:
    """Resolves asset ids to image files below ``root``."""

    def __init__(self, root: Path):
        self.root = Path(root).resolve()

    def _locate(self, asset_id: str) -> Path:
        path = (self.root / asset_id).resolve()
        if self.root not in path.parents:
            raise AssetNotFoundError(f"Asset id escapes the asset directory: {asset_id}")
        if not path.is_file():
            raise AssetNotFoundError(f"Asset not found: {asset_id}")
        return path

    def _inspect(self, asset_id: str) -> AssetInfo:
        path = self._locate(asset_id)
        try:
            with Image.open(path) as img:
                width, height = img.size
                mime_type = Image.MIME.get(img.format or "")
        except (UnidentifiedImageError, OSError) as e:
            raise AssetNotFoundError(f"Asset {asset_id} is not a readable image: {e}") from e
        return AssetInfo(asset_id, path, width, height, mime_type)

    async def resolve(self, asset_id: str) -> AssetInfo:
        return await asyncio.to_thread(self._inspect, asset_id)
