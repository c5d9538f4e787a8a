# -*- coding: utf-8 -*-
"""测试用的PDF生成fixture"""

import pytest
from pypdf import PdfReader, PdfWriter


def _page_width(index: int) -> int:
    """第index页（从0开始）的页面宽度，用来在输出里辨认页面"""
    return 100 + index


@pytest.fixture
def expected_widths():
    """源文件第 [start, end) 页的页面宽度"""

    def _expected(start: int, end: int) -> list:
        return [_page_width(i) for i in range(start, end)]

    return _expected


@pytest.fixture
def read_page_widths():
    """读取PDF每一页的页面宽度"""

    def _read(path) -> list:
        reader = PdfReader(str(path))
        return [round(float(page.mediabox.width)) for page in reader.pages]

    return _read


@pytest.fixture
def make_pdf(tmp_path):
    """生成一个有page_count页空白页的PDF，返回路径字符串"""

    def _make(page_count: int, name: str = "original.pdf",
              user_password=None, algorithm=None) -> str:
        writer = PdfWriter()
        for i in range(page_count):
            writer.add_blank_page(width=_page_width(i), height=200)
        if user_password is not None:
            if algorithm is None:
                writer.encrypt(user_password=user_password, owner_password="owner-secret")
            else:
                writer.encrypt(user_password=user_password, owner_password="owner-secret",
                               algorithm=algorithm)
        path = tmp_path / name
        with open(path, "wb") as f:
            writer.write(f)
        return str(path)

    return _make
