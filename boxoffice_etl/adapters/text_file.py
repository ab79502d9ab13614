# boxoffice_etl/adapters/text_file.py
from pathlib import Path
from typing import Union

from boxoffice_etl.parsers.text import ReportText


def load(path: Union[str, Path]) -> ReportText:
    return ReportText.from_raw(Path(path).read_text(encoding="utf-8"))
