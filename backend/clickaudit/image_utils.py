"""Thumbnailing: shrink fetched images into small self-contained previews."""
from PIL import Image
import io
import base64


def make_thumbnail(image_bytes: bytes, max_width: int = 200, max_height: int = 200,
                   quality: int = 75) -> bytes:
    """
    Downscale an image to fit inside max_width x max_height and re-encode as JPEG.
    Aspect ratio is preserved and smaller images are never enlarged.
    Raises PIL.UnidentifiedImageError / OSError on bytes Pillow can't decode.
    """
    img = Image.open(io.BytesIO(image_bytes))
    # Animated GIF/WebP: first frame only
    img.seek(0)

    # thumbnail() only ever shrinks
    img.thumbnail((max_width, max_height), Image.LANCZOS)

    # Flatten transparency onto white (JPEG doesn't support alpha)
    if img.mode in ('RGBA', 'LA') or (img.mode == 'P' and 'transparency' in img.info):
        img = img.convert('RGBA')
        bg = Image.new('RGB', img.size, (255, 255, 255))
        bg.paste(img, mask=img.split()[3])
        img = bg
    elif img.mode != 'RGB':
        img = img.convert('RGB')

    buf = io.BytesIO()
    img.save(buf, format='JPEG', quality=quality, optimize=True)
    return buf.getvalue()


def to_data_uri(data: bytes, media_type: str) -> str:
    """Base64-encode bytes as a data: URI."""
    b64 = base64.b64encode(data).decode()
    return f"data:{media_type};base64,{b64}"


def decode_data_uri(uri: str) -> tuple[bytes, str]:
    """
    Split a data: URI into (bytes, media_type).
    Raises ValueError if it isn't one.
    """
    if not uri.startswith("data:") or "," not in uri:
        raise ValueError("not a data: URI")
    header, payload = uri[5:].split(",", 1)
    media_type = header.split(";")[0] or "text/plain"
    if header.endswith(";base64"):
        return base64.b64decode(payload), media_type
    from urllib.parse import unquote_to_bytes
    return unquote_to_bytes(payload), media_type
