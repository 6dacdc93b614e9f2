"""
Files feature: image thumbnails.
"""

import io

THUMBNAIL_MAX_SIZE = (300, 300)
THUMBNAIL_CONTENT_TYPE = "image/jpeg"


def make_image_thumbnail(image_bytes: bytes) -> bytes:
    """Downscale an image to fit 300x300, re-encoded as JPEG."""
    import PIL.Image

    with PIL.Image.open(io.BytesIO(image_bytes)) as image:
        image.thumbnail(THUMBNAIL_MAX_SIZE)
        if image.mode not in ("RGB", "L"):
            image = image.convert("RGB")
        out = io.BytesIO()
        image.save(out, format="JPEG", quality=85)
    return out.getvalue()
