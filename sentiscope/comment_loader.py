from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Union

import pandas as pd

logger = logging.getLogger(__name__)

_TEXT_KEYS = ("comment", "text", "content")
_EXCEL_SUFFIXES = (".xlsx", ".xls")


def load_comments(path: Union[str, Path]) -> list[str]:
    """
    Read a flat, ordered list of comments from a file.

    Supported:
    - .csv: first column, header row skipped
    - .xlsx / .xls: first column of the first sheet, header row skipped
    - .json: array of strings, or array of objects with comment/text/content
    - .txt: one comment per line

    Blank entries are dropped and surrounding whitespace stripped.

    Raises:
        ValueError: unsupported extension or unexpected JSON shape
        OSError: file cannot be read
    """
    p = Path(path)
    suffix = p.suffix.lower()

    if suffix == ".csv":
        comments = _first_column(pd.read_csv(p, dtype=str, keep_default_na=False))
    elif suffix in _EXCEL_SUFFIXES:
        comments = _first_column(pd.read_excel(p, dtype=str))
    elif suffix == ".json":
        comments = _read_json(p)
    elif suffix == ".txt":
        comments = _clean(pd.Series(p.read_text(encoding="utf-8").splitlines(), dtype=object))
    else:
        raise ValueError(f"Unsupported comment file type: {suffix or p.name}")

    logger.info("Loaded comments: path=%s count=%s", p, len(comments))
    return comments


def _first_column(df: pd.DataFrame) -> list[str]:
    if df.shape[1] == 0:
        return []
    return _clean(df.iloc[:, 0])


def _read_json(p: Path) -> list[str]:
    data = json.loads(p.read_text(encoding="utf-8"))
    if not isinstance(data, list):
        raise ValueError("JSON comment file must contain an array")

    if data and all(isinstance(item, dict) for item in data):
        df = pd.DataFrame(data)
        keys = [k for k in _TEXT_KEYS if k in df.columns]
        if not keys:
            return []
        # First non-null of comment/text/content per row
        return _clean(df[keys].bfill(axis=1).iloc[:, 0])

    return _clean(pd.Series(data, dtype=object).map(_json_item_text))


def _json_item_text(item: Any) -> str:
    if isinstance(item, str):
        return item
    if isinstance(item, dict):
        for key in _TEXT_KEYS:
            value = item.get(key)
            if isinstance(value, str):
                return value
        return ""
    if item is None:
        return ""
    return str(item)


def _clean(values: pd.Series) -> list[str]:
    s = values.dropna().astype(str).str.strip()
    return s[s != ""].tolist()
