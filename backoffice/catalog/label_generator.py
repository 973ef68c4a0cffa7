"""
Local SKU label generator
Uses Pillow and python-barcode to draw a Code128 label as a PNG data URL
"""
import io
import base64
import logging
from typing import Optional

import barcode
from barcode.writer import ImageWriter
from PIL import Image, ImageDraw, ImageFont

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 30


def _load_fonts():
    try:
        return (
            ImageFont.truetype('/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf', 14),
            ImageFont.truetype('/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf', 12),
        )
    except (OSError, IOError):
        try:
            return ImageFont.truetype('arial.ttf', 14), ImageFont.truetype('arial.ttf', 12)
        except (OSError, IOError):
            return ImageFont.load_default(), ImageFont.load_default()


def _draw_centered(draw, text, y, font, width):
    bbox = draw.textbbox((0, 0), text, font=font)
    text_width = bbox[2] - bbox[0]
    draw.text(((width - text_width) // 2, y), text, fill='black', font=font)


def render_barcode(value: str):
    """Render `value` as a Code128 barcode image without the human-readable text"""
    code128 = barcode.get_barcode_class('code128')
    return code128(value, writer=ImageWriter()).render({
        'write_text': False,
        'module_width': 0.3,
        'module_height': 20.0,
        'quiet_zone': 2.0,
        'background': 'white',
        'foreground': 'black',
    })


def generate_label_image(
    title: str,
    sku: str,
    price: Optional[str] = None,
    width: int = 400,  # 4 inches at 100 DPI
    height: int = 200,  # 2 inches at 100 DPI
) -> str:
    """
    Draw a shelf label for a product.

    Layout, top to bottom: product title, barcode of the SKU, SKU text,
    price (when given).

    Returns:
        Base64-encoded PNG image as data URL string
    """
    if len(title) > MAX_TITLE_LENGTH:
        title = title[:MAX_TITLE_LENGTH] + '...'

    img = Image.new('RGB', (width, height), color='white')
    draw = ImageDraw.Draw(img)
    font_medium, font_small = _load_fonts()

    margin = 10
    title_y = 8
    barcode_y = title_y + 22
    bottom_reserved = 40 if price else 22

    _draw_centered(draw, title, title_y, font_medium, width)

    try:
        barcode_img = render_barcode(sku)
        barcode_img_width, barcode_img_height = barcode_img.size

        available_height = height - barcode_y - bottom_reserved
        barcode_width = width - (2 * margin)
        scale_factor = barcode_width / barcode_img_width
        scaled_height = int(barcode_img_height * scale_factor)
        if scaled_height > available_height:
            scale_factor = available_height / barcode_img_height
            scaled_height = available_height
            barcode_width = int(barcode_img_width * scale_factor)

        barcode_img = barcode_img.resize((barcode_width, scaled_height), Image.Resampling.BILINEAR)
        img.paste(barcode_img, ((width - barcode_width) // 2, barcode_y))
        text_y = barcode_y + scaled_height + 4
    except Exception as e:
        # Unencodable SKU: print the value so the label is still usable
        logger.error(f"Barcode generation failed for '{sku}': {str(e)}", exc_info=True)
        text_y = barcode_y + 10

    _draw_centered(draw, sku, text_y, font_small, width)
    if price:
        _draw_centered(draw, price, text_y + 16, font_medium, width)

    buffer = io.BytesIO()
    img.save(buffer, format='PNG', optimize=False, compress_level=1)
    image_base64 = base64.b64encode(buffer.getvalue()).decode('utf-8')
    buffer.close()
    img.close()

    return f'data:image/png;base64,{image_base64}'
