import base64
import io
import re
from datetime import date

from PIL import Image

from erphub.documents.delivery_pdf import build_delivery_pdf, delivery_filename
from erphub.services.deliveries import create_delivery


def _png_data_uri():
    buf = io.BytesIO()
    Image.new("RGBA", (40, 40), (255, 0, 0, 128)).save(buf, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode()


def _delivery(db, staff, items):
    return create_delivery(
        db,
        delivery_type="air",
        date=date(2024, 6, 15),
        client_name="Al Noor Trading",
        departure="Dubai",
        destination="Accra",
        items=items,
        sender_phone="+971 50 000 0000",
        receiver_details="Kwame Mensah, Ring Road, Accra",
        company_id=staff.company_id,
        created_by=staff.id,
    )


def test_pdf_renders_with_pictures(db, staff, company):
    items = [{"name": f"Carton {i}", "picture": _png_data_uri()} for i in range(6)]
    pdf = build_delivery_pdf(_delivery(db, staff, items), company)

    assert pdf.startswith(b"%PDF")
    # Six item cards do not fit on one page
    pages = re.search(rb"/Count (\d+)", pdf)
    assert pages is not None and int(pages.group(1)) >= 2


def test_unreadable_images_are_skipped(db, staff):
    delivery = _delivery(db, staff, [{"name": "Spare parts", "picture": "https://img.example/broken.jpg"}])

    pdf = build_delivery_pdf(delivery, None, image_loader=lambda src: b"not an image")

    assert pdf.startswith(b"%PDF")


def test_filename(db, staff):
    delivery = _delivery(db, staff, [])
    assert delivery_filename(delivery) == "Air_Delivery_Al_Noor_Trading_2024-06-15.pdf"
