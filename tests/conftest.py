import io

import pytest
from PIL import Image

EXAMPLE_ATLAS = """sheet.png
size: 100,100
hero
  rotate: false
  xy: 0, 0
  size: 32, 48
villain
  rotate: true
  xy: 32, 0
  size: 48, 32
"""


def make_sheet(width=100, height=100):
    # Every pixel is unique so crops and rotations can be compared exactly
    img = Image.new('RGBA', (width, height))
    img.putdata([(x, y, (x * 7 + y * 3) % 256, 255) for y in range(height) for x in range(width)])
    return img


def decode(data):
    with Image.open(io.BytesIO(data)) as img:
        return img.convert('RGBA')


@pytest.fixture
def sheet():
    return make_sheet()


@pytest.fixture
def sheet_png(sheet):
    buffer = io.BytesIO()
    sheet.save(buffer, format='PNG')
    return buffer.getvalue()


@pytest.fixture
def example_atlas():
    return EXAMPLE_ATLAS
