# boxoffice_etl/adapters/pdf_report.py
from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import List, Union

import pdfplumber

from boxoffice_etl.parsers.text import ReportText

log = logging.getLogger(__name__)

PdfSource = Union[str, Path, bytes]


def _open(source: PdfSource):
    if isinstance(source, (bytes, bytearray)):
        return pdfplumber.open(io.BytesIO(source))
    return pdfplumber.open(str(source))


def load(source: PdfSource) -> ReportText:
    """
    PDF -> ReportText : fragments par page (mots regroupés avec leurs espaces,
    comme les runs de texte du PDF) et texte ligne à ligne.
    """
    pages: List[List[str]] = []
    text_parts: List[str] = []
    with _open(source) as pdf:
        for page in pdf.pages:
            words = page.extract_words(keep_blank_chars=True, use_text_flow=True)
            pages.append([w["text"].strip() for w in words if w["text"].strip()])
            text_parts.append(page.extract_text() or "")
    log.info("pdf: %s pages, %s fragments", len(pages), sum(len(p) for p in pages))

    report = ReportText.from_raw("\n".join(text_parts))
    report.pages = pages
    return report
