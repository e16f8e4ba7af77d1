import io

import pytest
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    """Generate a minimal single-page PDF with known text content."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Hello PDF World")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def multi_page_pdf_bytes() -> bytes:
    """Generate a two-page PDF with known text on each page."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Page one content")
    c.showPage()
    c.drawString(72, 720, "Page two content")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def empty_pdf_bytes() -> bytes:
    """Generate a valid PDF with no text content (blank page)."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.showPage()
    c.save()
    return buf.getvalue()


BRIEF_PAGES = [
    [
        "Unit number and title 4017 Engineering Principles",
        "Assignment 1 of 2",
        "Assignment title: Forces and Circuits",
        "AIAS - LEVEL 2",
    ],
    [
        "Task 1 - Static forces",
        "a) Describe the forces acting on a simply supported beam.",
        "b) Calculate the reaction at support A.",
    ],
    [
        "Task 2: Circuits",
        "Use Ohm's law for the resistor network.",
        "V = I * R",
    ],
    [
        "Assessment Criteria",
        "LO1 Examine static systems P1 M1 D1",
    ],
]


@pytest.fixture()
def brief_pdf_bytes() -> bytes:
    """Generate a four-page assignment brief with two tasks and a criteria page."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    for lines in BRIEF_PAGES:
        y = 720
        for line in lines:
            c.drawString(72, y, line)
            y -= 20
        c.showPage()
    c.save()
    return buf.getvalue()
