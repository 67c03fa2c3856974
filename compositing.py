"""
Verdict compositing and share-size reduction

Draws the verdict over the uploaded photo the way the result screen shows
it, then shrinks the result until it fits the share budget (pixel count
and byte size).
"""

import base64
import binascii
import io
import logging
import math
import re

from PIL import Image, ImageDraw, ImageFont, ImageOps, UnidentifiedImageError

from verdict import VERDICT_STYLES, verdict_text

logger = logging.getLogger(__name__)

MAX_PIXELS = 25_000_000
MAX_SIZE_MB = 10

START_QUALITY = 92
MIN_QUALITY = 50
QUALITY_STEP = 5

CORNER_RADIUS = 16
OVERLAY_ALPHA = 102  # rgba(0, 0, 0, 0.4)
SHADOW_OFFSET = 2
SHADOW_ALPHA = 204  # rgba(0, 0, 0, 0.8)
VERDICT_FONT_SIZE = 96  # 6rem
EMOJI_FONT_SIZE = 64  # 4rem
EMOJI_MARGIN = 16  # 1rem

# Color emoji fonts (Noto Color Emoji) only ship this bitmap size
_EMOJI_BITMAP_SIZE = 109

_DATA_URL = re.compile(r'^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(;[\w=-]+)*;base64,(?P<data>.*)$', re.S)


class ImageDecodeError(ValueError):
    pass


def decode_data_url(data_url):
    """Split a base64 data URL into (mime, bytes).

    Bare base64 is accepted too and reported as image/jpeg.
    """
    match = _DATA_URL.match(data_url.strip())
    if match:
        mime = match.group('mime') or 'application/octet-stream'
        payload = match.group('data')
    else:
        mime, payload = 'image/jpeg', data_url.strip()
    try:
        return mime, base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageDecodeError(f'Invalid base64 image: {e}') from e


def encode_data_url(image_bytes, mime='image/jpeg'):
    return f'data:{mime};base64,' + base64.b64encode(image_bytes).decode('ascii')


def open_image(image_bytes):
    """Open upload bytes as an upright RGB image."""
    try:
        img = Image.open(io.BytesIO(image_bytes))
        img = ImageOps.exif_transpose(img)
        if img.mode != 'RGB':
            img = img.convert('RGB')
        img.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        raise ImageDecodeError(f'Invalid image data: {e}') from e
    return img


def _load_font(font_path, size):
    if font_path:
        return ImageFont.truetype(str(font_path), size)
    return ImageFont.load_default(size=size)


def _load_emoji_font(font_path, size):
    try:
        return ImageFont.truetype(str(font_path), size)
    except OSError:
        return ImageFont.truetype(str(font_path), _EMOJI_BITMAP_SIZE)


def _rounded_mask(size, radius=CORNER_RADIUS):
    mask = Image.new('L', size, 0)
    ImageDraw.Draw(mask).rounded_rectangle((0, 0, size[0] - 1, size[1] - 1), radius=radius, fill=255)
    return mask


def _verdict_layer(verdict, font_path=None, emoji_font_path=None):
    """Transparent layer holding the verdict text (and emoji), not yet rotated."""
    style = VERDICT_STYLES[verdict]
    text = verdict_text(verdict)
    font = _load_font(font_path, VERDICT_FONT_SIZE)

    probe = ImageDraw.Draw(Image.new('RGBA', (1, 1)))
    left, top, right, bottom = probe.textbbox((0, 0), text, font=font)
    text_w, text_h = right - left, bottom - top

    emoji_font = None
    emoji_w = emoji_h = 0
    if emoji_font_path:
        emoji_font = _load_emoji_font(emoji_font_path, EMOJI_FONT_SIZE)
        e_left, e_top, e_right, e_bottom = probe.textbbox((0, 0), style['emoji'], font=emoji_font)
        emoji_w, emoji_h = e_right - e_left, e_bottom - e_top

    pad = SHADOW_OFFSET * 2
    width = max(text_w, emoji_w) + pad * 2
    height = text_h + (EMOJI_MARGIN + emoji_h if emoji_font else 0) + pad * 2
    layer = Image.new('RGBA', (width, height), (0, 0, 0, 0))
    draw = ImageDraw.Draw(layer)

    x = (width - text_w) // 2 - left
    y = pad - top
    draw.text((x + SHADOW_OFFSET, y + SHADOW_OFFSET), text, font=font, fill=(0, 0, 0, SHADOW_ALPHA))
    draw.text((x, y), text, font=font, fill=style['color'])

    if emoji_font:
        ex = (width - emoji_w) // 2 - e_left
        ey = pad + text_h + EMOJI_MARGIN - e_top
        draw.text((ex, ey), style['emoji'], font=emoji_font, embedded_color=True)

    return layer


def composite_verdict(image, verdict, font_path=None, emoji_font_path=None):
    """Render the result screen card at the image's natural size."""
    if verdict not in VERDICT_STYLES:
        raise ValueError(f'Unknown verdict: {verdict!r}')

    width, height = image.size
    mask = _rounded_mask((width, height))

    card = Image.new('RGBA', (width, height), (0, 0, 0, 255))
    card.paste(image.convert('RGBA'), (0, 0), mask)
    shade = Image.new('RGBA', (width, height), (0, 0, 0, 0))
    shade.paste((0, 0, 0, OVERLAY_ALPHA), (0, 0, width, height), mask)
    card = Image.alpha_composite(card, shade)

    layer = _verdict_layer(verdict, font_path, emoji_font_path)
    # PIL rotates counter-clockwise
    rotation = VERDICT_STYLES[verdict]['rotation']
    layer = layer.rotate(-rotation, resample=Image.Resampling.BICUBIC, expand=True)
    offset = ((width - layer.width) // 2, (height - layer.height) // 2)
    card.paste(layer, offset, layer)

    return card.convert('RGB')


def scale_to_pixel_limit(image, max_pixels=MAX_PIXELS):
    width, height = image.size
    pixels = width * height
    if pixels <= max_pixels:
        return image
    scale = math.sqrt(max_pixels / pixels)
    new_size = (max(1, math.floor(width * scale)), max(1, math.floor(height * scale)))
    logger.info('Resizing share image from %dx%d to %dx%d', width, height, *new_size)
    return image.resize(new_size, Image.Resampling.LANCZOS)


def encode_jpeg(image, quality):
    buffer = io.BytesIO()
    image.save(buffer, format='JPEG', quality=quality)
    return buffer.getvalue()


def resize_to_limit(image, max_pixels=MAX_PIXELS, max_size_mb=MAX_SIZE_MB):
    """Scale under the pixel limit, then step JPEG quality down under the byte limit.

    Quality starts at 92 and drops by 5 while the encoding is too large and
    quality is above 50. The last encoding is returned even if it is still
    over the byte limit.
    """
    image = scale_to_pixel_limit(image, max_pixels)
    max_bytes = max_size_mb * 1024 * 1024

    quality = START_QUALITY
    data = encode_jpeg(image, quality)
    while len(data) > max_bytes and quality > MIN_QUALITY:
        quality -= QUALITY_STEP
        data = encode_jpeg(image, quality)

    logger.debug('Share image encoded at quality %d (%d bytes)', quality, len(data))
    return data


def capture_image_with_verdict(image_bytes, verdict, font_path=None, emoji_font_path=None,
                               max_pixels=MAX_PIXELS, max_size_mb=MAX_SIZE_MB):
    """Upload bytes in, share-ready JPEG bytes out."""
    image = open_image(image_bytes)
    card = composite_verdict(image, verdict, font_path, emoji_font_path)
    return resize_to_limit(card, max_pixels=max_pixels, max_size_mb=max_size_mb)
