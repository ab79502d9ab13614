# boxoffice_etl/adapters/remote.py
from __future__ import annotations

import asyncio
import logging

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from boxoffice_etl.core.config import settings
from boxoffice_etl.parsers.text import ReportText

from . import pdf_report

log = logging.getLogger(__name__)


@retry(wait=wait_exponential(min=1, max=10), stop=stop_after_attempt(3),
       retry=retry_if_exception_type(httpx.TransportError), reraise=True)
async def download(url: str) -> bytes:
    async with httpx.AsyncClient(timeout=settings.download_timeout, follow_redirects=True) as client:
        r = await client.get(url)
        r.raise_for_status()
    log.info("remote: %s octets depuis %s", len(r.content), url)
    return r.content


async def load(url: str) -> ReportText:
    content = await download(url)
    return await asyncio.to_thread(pdf_report.load, content)
