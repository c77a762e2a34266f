"""
Tests for bill receipts and display formatting.
"""

from fruit_market.models import Bill, BillDetail, Customer
from fruit_market.services.bill_pdf import generate_bill_pdf
from fruit_market.utils.formatters import money, weight


def _bill(n_details=2):
    details = tuple(
        BillDetail(fruit_id=i, fruit_name=f"Fruit {i}", weight=0.5 + i, price=3.0)
        for i in range(n_details)
    )
    return Bill(id=17, user_id=2, cus_id=7, date="2026-03-01 09:30:00",
                total_cost=sum(d.line_total for d in details), details=details)


def test_pdf_written_to_export_dir(tmp_path):
    path = generate_bill_pdf(_bill(), Customer(id=7, name="Lan", phone="0901"), export_dir=str(tmp_path))

    assert path.endswith("bill_17.pdf")
    with open(path, "rb") as f:
        assert f.read(4) == b"%PDF"


def test_long_bill_spans_pages(tmp_path):
    path = generate_bill_pdf(_bill(80), export_dir=str(tmp_path))

    with open(path, "rb") as f:
        assert f.read(4) == b"%PDF"


def test_formatters():
    assert money(4.5) == "4.50 USD"
    assert weight(1.5) == "1.500 kg"
