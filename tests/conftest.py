import io

import pytest
from pptx import Presentation
from pptx.util import Inches

BLANK_LAYOUT = 6


def build_pptx(*slides: str) -> bytes:
    """Return a .pptx deck with one text box per slide."""
    presentation = Presentation()
    layout = presentation.slide_layouts[BLANK_LAYOUT]
    for text in slides:
        slide = presentation.slides.add_slide(layout)
        box = slide.shapes.add_textbox(Inches(1), Inches(1), Inches(8), Inches(1))
        box.text_frame.text = text

    buffer = io.BytesIO()
    presentation.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def make_pptx():
    return build_pptx


class KeywordClassifier:
    """Stand-in for the shared language classifier."""

    def __init__(self):
        self.calls = []

    def detect(self, text):
        self.calls.append(text)
        if "xx-lang" in text:
            return "xx"
        if any("Ѐ" <= char <= "ӿ" for char in text):
            return "ru"
        if "bonjour" in text.lower():
            return "fr"
        return "en"


@pytest.fixture
def keyword_classifier():
    return KeywordClassifier()
