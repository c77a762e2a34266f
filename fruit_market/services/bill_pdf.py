from __future__ import annotations

import os
from typing import Optional

from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from fruit_market.config import settings
from fruit_market.models import Bill, Customer


def generate_bill_pdf(bill: Bill, customer: Optional[Customer] = None, export_dir: Optional[str] = None) -> str:
    export_dir = export_dir or settings.export_dir
    os.makedirs(export_dir, exist_ok=True)

    filename = f"bill_{bill.id}.pdf"
    path = os.path.join(export_dir, filename)

    c = canvas.Canvas(path, pagesize=A4)
    w, h = A4

    y = h - 50
    c.setFont("Helvetica-Bold", 14)
    c.drawString(40, y, f"FRESH FRUIT MARKET - BILL #{bill.id}")
    y -= 20

    c.setFont("Helvetica", 11)
    if customer is not None:
        c.drawString(40, y, f"Customer: {customer.name} ({customer.phone})")
    else:
        c.drawString(40, y, f"Customer: #{bill.cus_id}" if bill.cus_id else "Customer: guest")
    y -= 16
    c.drawString(40, y, f"Staff: #{bill.user_id}")
    y -= 16
    c.drawString(40, y, f"Date: {bill.date}")
    y -= 24

    # header
    c.setFont("Helvetica-Bold", 10)
    c.drawString(40, y, "Fruit")
    c.drawString(290, y, "Weight (kg)")
    c.drawString(380, y, "Price/kg")
    c.drawString(480, y, "Total")
    y -= 10
    c.line(40, y, 550, y)
    y -= 16

    c.setFont("Helvetica", 10)
    for d in bill.details:
        c.drawString(40, y, (d.fruit_name or f"#{d.fruit_id}")[:40])
        c.drawRightString(340, y, f"{d.weight:.{settings.weight_decimals}f}")
        c.drawRightString(430, y, f"{d.price:.{settings.decimals}f}")
        c.drawRightString(550, y, f"{d.line_total:.{settings.decimals}f}")
        y -= 14
        if y < 80:
            c.showPage()
            y = h - 50
            c.setFont("Helvetica", 10)

    y -= 10
    c.line(40, y, 550, y)
    y -= 18
    c.setFont("Helvetica-Bold", 12)
    c.drawRightString(550, y, f"TOTAL: {bill.total_cost:.{settings.decimals}f} {settings.currency}")

    c.save()
    return path
