import io
from typing import Any, Dict

from PIL import ExifTags, Image


class PillowExifReader:
    """Read EXIF tags from encoded bytes, keyed by tag name."""

    async def read(self, data: bytes) -> Dict[str, Any]:
        try:
            with Image.open(io.BytesIO(data)) as pil:
                exif = pil.getexif()
        except Exception:
            # no readable metadata is reported as an empty mapping
            return {}
        if not exif:
            return {}
        return {ExifTags.TAGS.get(k, str(k)): v for k, v in exif.items()}
