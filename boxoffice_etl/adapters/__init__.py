# boxoffice_etl/adapters/__init__.py
import asyncio
from pathlib import Path

from boxoffice_etl.parsers.text import ReportText

from . import pdf_report, remote, text_file

REGISTRY = {
    "pdf": pdf_report.load,    # chemin ou bytes -> ReportText
    "url": remote.load,        # async
    "text": text_file.load,
}


async def load_source(source: str) -> ReportText:
    """URL http(s), fichier .pdf, sinon fichier texte."""
    if source.startswith(("http://", "https://")):
        return await REGISTRY["url"](source)
    if Path(source).suffix.lower() == ".pdf":
        return await asyncio.to_thread(REGISTRY["pdf"], source)
    return await asyncio.to_thread(REGISTRY["text"], source)
