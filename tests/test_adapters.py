import tempfile
import threading
import unittest
from pathlib import Path
from unittest import mock

from boxoffice_etl import adapters
from boxoffice_etl.adapters import remote
from boxoffice_etl.parsers import parse


class TestTextSource(unittest.IsolatedAsyncioTestCase):

    async def test_text_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "report.txt"
            path.write_text("Performance - 251010E\n", encoding="utf-8")
            report = await adapters.load_source(str(path))
        self.assertEqual(report.lines, ["Performance - 251010E"])
        records, strategy = parse(report)
        self.assertEqual((records[0].performance_code, strategy), ("251010E", "fallback"))

    async def test_dispatch(self):
        with mock.patch.dict(adapters.REGISTRY, {"pdf": mock.Mock(return_value="pdf"),
                                                 "url": mock.AsyncMock(return_value="url")}):
            self.assertEqual(await adapters.load_source("https://example.org/r.pdf"), "url")
            self.assertEqual(await adapters.load_source("/tmp/Report.PDF"), "pdf")


class TestRemoteSource(unittest.IsolatedAsyncioTestCase):

    async def test_pdf_extraction_runs_in_worker_thread(self):
        threads = []

        def fake_load(content):
            threads.append(threading.current_thread())
            return content.decode()

        with mock.patch.object(remote, "download", mock.AsyncMock(return_value=b"report")), \
                mock.patch.object(remote.pdf_report, "load", side_effect=fake_load):
            report = await remote.load("https://example.org/r.pdf")
        self.assertEqual(report, "report")
        self.assertIsNot(threads[0], threading.main_thread())


if __name__ == "__main__":
    unittest.main()
