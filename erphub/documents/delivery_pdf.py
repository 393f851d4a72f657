"""
Render a Delivery to an A4 PDF: branded header, sender box, details table,
receiver box, one card per item with its picture and a "Page i of n" footer.
"""
import base64
import io
from datetime import date
from typing import Callable, List, Optional, Tuple

import httpx
import structlog
from PIL import Image as PILImage
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfgen import canvas
from slugify import slugify

from ..models.models import Company, Delivery

logger = structlog.get_logger(__name__)

PRIMARY = colors.Color(37 / 255, 99 / 255, 235 / 255)
BLACK = colors.black
GRAY = colors.Color(107 / 255, 114 / 255, 128 / 255)
LIGHT_GRAY = colors.Color(243 / 255, 244 / 255, 246 / 255)
BORDER_GRAY = colors.Color(229 / 255, 231 / 255, 235 / 255)
WHITE = colors.white

FONT = "Helvetica"
FONT_BOLD = "Helvetica-Bold"

MARGIN = 15 * mm
HEADER_HEIGHT = 35 * mm
FOOTER_SPACE = 20 * mm
ROW_HEIGHT = 7 * mm
LABEL_WIDTH = 50 * mm
ITEM_CARD_HEIGHT = 60 * mm
PICTURE_SIZE = 45 * mm
DEFAULT_COMPANY_NAME = "ERP Hub"

ImageLoader = Callable[[str], Optional[bytes]]


class NumberedCanvas(canvas.Canvas):
    """Canvas that defers page output so every page can show the total page count."""

    def __init__(self, *args, **kwargs):
        canvas.Canvas.__init__(self, *args, **kwargs)
        self._saved_page_states = []

    def showPage(self):
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        total = len(self._saved_page_states)
        for state in self._saved_page_states:
            self.__dict__.update(state)
            self._draw_footer(total)
            canvas.Canvas.showPage(self)
        canvas.Canvas.save(self)

    def _draw_footer(self, total: int):
        width, _ = A4
        self.setStrokeColor(BORDER_GRAY)
        self.line(MARGIN, 15 * mm, width - MARGIN, 15 * mm)
        self.setFont(FONT, 8)
        self.setFillColor(GRAY)
        self.drawCentredString(width / 2, 8 * mm, f"Page {self._pageNumber} of {total}")


def load_image_bytes(src: str) -> Optional[bytes]:
    """Read a data: URI or fetch an http(s) URL. Anything else yields None."""
    if not src:
        return None
    if src.startswith("data:"):
        _, _, payload = src.partition(",")
        return base64.b64decode(payload)
    if src.startswith("http://") or src.startswith("https://"):
        with httpx.Client(timeout=30.0, follow_redirects=True) as client:
            r = client.get(src)
            r.raise_for_status()
            return r.content
    return None


def _image_reader(src: Optional[str], loader: ImageLoader) -> Optional[ImageReader]:
    if not src:
        return None
    try:
        raw = loader(src)
        if not raw:
            return None
        pil_im = PILImage.open(io.BytesIO(raw))
        if pil_im.mode in ("RGBA", "P", "LA"):
            pil_im = pil_im.convert("RGB")
        buf = io.BytesIO()
        pil_im.save(buf, format="JPEG", quality=90)
        buf.seek(0)
        return ImageReader(buf)
    except (OSError, ValueError, httpx.HTTPError) as e:
        logger.warning("delivery_pdf_image_skipped", error=str(e))
        return None


def _fmt_date(value: Optional[date]) -> str:
    return value.strftime("%d/%m/%Y") if value else ""


class _Page:
    """Top-down cursor over a canvas that starts a new page when space runs out."""

    def __init__(self, c: canvas.Canvas):
        self.c = c
        self.width, self.height = A4
        self.y = self.height - MARGIN

    def ensure(self, needed: float):
        if self.y - needed < FOOTER_SPACE:
            self.c.showPage()
            self.y = self.height - MARGIN

    def text(self, x: float, text: str, size: int = 10, bold: bool = False, color=BLACK, dy: float = 0):
        self.c.setFont(FONT_BOLD if bold else FONT, size)
        self.c.setFillColor(color)
        self.c.drawString(x, self.y - dy, text)


def _draw_header(page: _Page, delivery: Delivery, logo: Optional[ImageReader]):
    c, width, height = page.c, page.width, page.height
    c.setFillColor(PRIMARY)
    c.rect(0, height - HEADER_HEIGHT, width, HEADER_HEIGHT, stroke=0, fill=1)
    if logo is not None:
        logo_h = 25 * mm
        c.drawImage(logo, MARGIN, height - HEADER_HEIGHT + (HEADER_HEIGHT - logo_h) / 2,
                    width=40 * mm, height=logo_h, preserveAspectRatio=True, mask="auto")
    c.setFillColor(WHITE)
    c.setFont(FONT_BOLD, 20)
    title = f"{'AIR' if delivery.delivery_type == 'air' else 'SEA'} DELIVERY FORM"
    c.drawCentredString(width / 2, height - HEADER_HEIGHT / 2 - 5, title)
    c.setFont(FONT, 9)
    c.drawRightString(width - MARGIN, height - 12 * mm, f"Date: {_fmt_date(delivery.date)}")
    page.y = height - HEADER_HEIGHT - 10 * mm


def _draw_from_box(page: _Page, company: Optional[Company]):
    name = company.name if company else DEFAULT_COMPANY_NAME
    lines = [name]
    if company and company.address:
        lines.append(company.address)
    contact = " | ".join(v for v in ((company.phone, company.email) if company else ()) if v)
    if contact:
        lines.append(contact)

    box_h = (8 + 5 * len(lines)) * mm
    page.c.setFillColor(LIGHT_GRAY)
    page.c.rect(MARGIN, page.y - box_h, page.width - 2 * MARGIN, box_h, stroke=0, fill=1)
    page.text(MARGIN + 5 * mm, "From:", size=10, bold=True, dy=8 * mm)
    for i, line in enumerate(lines):
        page.text(MARGIN + 25 * mm, line, size=10 if i == 0 else 9, bold=(i == 0),
                  color=BLACK if i == 0 else GRAY, dy=(8 + 5 * i) * mm)
    page.y -= box_h + 10 * mm


def _detail_rows(delivery: Delivery) -> List[Tuple[str, str]]:
    rows = [
        ("Date:", _fmt_date(delivery.date)),
        ("Sender Name:", delivery.client_name),
        ("Sender Phone:", delivery.sender_phone),
        ("Departure:", delivery.departure),
        ("Destination:", delivery.destination),
        ("Size/Kg/Volume:", delivery.size_kg_volume),
        ("Est. Arrival Date:", _fmt_date(delivery.estimate_arrival_date)),
    ]
    return [(label, value) for label, value in rows if value]


def _draw_details(page: _Page, delivery: Delivery):
    page.ensure(20 * mm)
    page.text(MARGIN, "Delivery Information", size=12, bold=True)
    page.y -= 8 * mm
    value_width = page.width - 2 * MARGIN - LABEL_WIDTH - 10 * mm
    for index, (label, value) in enumerate(_detail_rows(delivery)):
        page.ensure(ROW_HEIGHT)
        page.c.setFillColor(WHITE if index % 2 == 0 else LIGHT_GRAY)
        page.c.rect(MARGIN, page.y - 2 * mm, page.width - 2 * MARGIN, ROW_HEIGHT, stroke=0, fill=1)
        page.text(MARGIN + 3 * mm, label, size=9, bold=True)
        value_lines = simpleSplit(str(value), FONT, 9, value_width)[:2]
        for i, line in enumerate(value_lines):
            page.text(MARGIN + LABEL_WIDTH, line, size=9, dy=i * 4 * mm)
        page.y -= ROW_HEIGHT + (4 * mm if len(value_lines) > 1 else 0)
    page.y -= 8 * mm


def _draw_receiver(page: _Page, delivery: Delivery):
    if not delivery.receiver_details:
        return
    lines = simpleSplit(delivery.receiver_details, FONT, 9, page.width - 2 * MARGIN - 10 * mm)
    box_h = (6 + 5 * len(lines)) * mm
    page.ensure(box_h + 10 * mm)
    page.text(MARGIN, "Receiver Details", size=12, bold=True)
    page.y -= 5 * mm
    page.c.setFillColor(LIGHT_GRAY)
    page.c.rect(MARGIN, page.y - box_h, page.width - 2 * MARGIN, box_h, stroke=0, fill=1)
    for i, line in enumerate(lines):
        page.text(MARGIN + 5 * mm, line, size=9, dy=(7 + 5 * i) * mm)
    page.y -= box_h + 10 * mm


def _draw_items(page: _Page, delivery: Delivery, loader: ImageLoader):
    items = delivery.items or []
    if not items:
        return
    page.ensure(15 * mm)
    page.text(MARGIN, f"Items ({len(items)})", size=12, bold=True)
    page.y -= 8 * mm
    card_w = page.width - 2 * MARGIN
    for index, item in enumerate(items):
        page.ensure(ITEM_CARD_HEIGHT + 5 * mm)
        top = page.y
        page.c.setFillColor(LIGHT_GRAY)
        page.c.setStrokeColor(BORDER_GRAY)
        page.c.rect(MARGIN, top - ITEM_CARD_HEIGHT, card_w, ITEM_CARD_HEIGHT, stroke=1, fill=1)
        page.text(MARGIN + 5 * mm, f"Item {index + 1}", size=10, bold=True, color=PRIMARY, dy=7 * mm)
        name_lines = simpleSplit(item.get("name") or "", FONT, 10, card_w - PICTURE_SIZE - 20 * mm)[:2]
        for i, line in enumerate(name_lines):
            page.text(MARGIN + 5 * mm, line, size=10, dy=(15 + 5 * i) * mm)

        picture = _image_reader(item.get("picture"), loader)
        if picture is not None:
            pic_x = MARGIN + card_w - PICTURE_SIZE - 5 * mm
            pic_y = top - ITEM_CARD_HEIGHT + (ITEM_CARD_HEIGHT - PICTURE_SIZE) / 2
            page.c.drawImage(picture, pic_x, pic_y, width=PICTURE_SIZE, height=PICTURE_SIZE,
                             preserveAspectRatio=True, anchor="c")
            page.c.setStrokeColor(BORDER_GRAY)
            page.c.rect(pic_x, pic_y, PICTURE_SIZE, PICTURE_SIZE, stroke=1, fill=0)
        page.y = top - ITEM_CARD_HEIGHT - 5 * mm


def build_delivery_pdf(delivery: Delivery, company: Optional[Company] = None,
                       image_loader: Optional[ImageLoader] = None) -> bytes:
    """
    Build the delivery form.

    Args:
        delivery: Delivery row (items as [{name, picture}])
        company: Sender company for branding; a default name is used when missing
        image_loader: src -> bytes, defaults to load_image_bytes. Unreadable images are skipped.

    Returns:
        PDF bytes
    """
    loader = image_loader or load_image_bytes
    buf = io.BytesIO()
    c = NumberedCanvas(buf, pagesize=A4)
    c.setTitle(delivery_filename(delivery)[:-4])
    page = _Page(c)

    logo = _image_reader(company.logo, loader) if company and company.logo else None
    _draw_header(page, delivery, logo)
    _draw_from_box(page, company)
    _draw_details(page, delivery)
    _draw_receiver(page, delivery)
    _draw_items(page, delivery, loader)

    c.showPage()
    c.save()
    return buf.getvalue()


def delivery_filename(delivery: Delivery) -> str:
    kind = "Air" if delivery.delivery_type == "air" else "Sea"
    client = slugify(delivery.client_name or "client", separator="_", lowercase=False)
    return f"{kind}_Delivery_{client}_{delivery.date.isoformat()}.pdf"
