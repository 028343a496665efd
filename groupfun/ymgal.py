"""Galgame picture sets: a local SQLite catalogue filled by scraping the site."""

from __future__ import annotations

import random
import re
import sqlite3
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union
from urllib.parse import quote_plus

import requests
from lxml import html as lxml_html

WEB_URL = "https://www.ymgal.com"
CG_TYPE = "Gal CG"
EMOTICON_TYPE = "其他"
WEB_PIC_URL = WEB_URL + "/co/picset/"
CG_URL = (
    WEB_URL + "/search?type=picset&sort=default&category=" + quote_plus(CG_TYPE) + "&page="
)
EMOTICON_URL = (
    WEB_URL
    + "/search?type=picset&sort=default&category="
    + quote_plus(EMOTICON_TYPE)
    + "&page="
)
TIMEOUT = 30.0

_PAGE_NUMBER_XPATH = (
    "//*[@id='pager-box']/div/a[@class='icon item pager-next']"
    "/preceding-sibling::a[1]/text()"
)
_PIC_ID_XPATH = "//*[@id='picset-result-list']/ul/div/div[1]/a"
_PICTURE_COUNT_XPATH = (
    "//div[@class='meta-info']/div[@class='meta-right']/span[2]/text()"
)
_CG_ITEM_XPATH = (
    "//*[@id='main-picset-warp']/div/div[2]/div/div[@class='swiper-wrapper']/div[{}]"
)
_EMOTICON_ITEM_XPATH = (
    "//*[@id='main-picset-warp']/div/div[@class='stream-list']/div[{}]/img"
)
_NUMBER = re.compile(r"\d+")

_COLUMNS = "id, title, picture_type, picture_description, picture_list"


@dataclass(frozen=True)
class Ymgal:
    """A picture set: its title, kind, description and comma-joined URLs."""

    id: int
    title: str
    picture_type: str
    picture_description: str
    picture_list: str

    @property
    def pictures(self) -> list[str]:
        """The picture URLs of the set."""
        return self.picture_list.split(",") if self.picture_list else []


class YmgalDB:
    """SQLite catalogue of picture sets."""

    def __init__(self, path: Union[str, Path]) -> None:
        self._lock = threading.RLock()
        self._conn = sqlite3.connect(
            str(path), isolation_level=None, check_same_thread=False
        )
        self._conn.execute(
            "CREATE TABLE IF NOT EXISTS ymgal ("
            "id INTEGER PRIMARY KEY, title TEXT, picture_type TEXT, "
            "picture_description VARCHAR(1024), picture_list VARCHAR(20000))"
        )

    def __enter__(self) -> "YmgalDB":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self._conn.close()

    def upsert(
        self,
        id: int,
        title: str,
        picture_type: str,
        description: str,
        picture_list: str,
    ) -> None:
        """Insert a picture set or replace the one with the same id."""
        with self._lock:
            self._conn.execute(
                f"INSERT OR REPLACE INTO ymgal ({_COLUMNS}) VALUES (?, ?, ?, ?, ?)",
                (int(id), title, picture_type, description, picture_list),
            )

    def get_by_id(self, id: Union[int, str]) -> Optional[Ymgal]:
        """Return the picture set with this id, or None."""
        with self._lock:
            row = self._conn.execute(
                f"SELECT {_COLUMNS} FROM ymgal WHERE id = ?", (int(id),)
            ).fetchone()
        return Ymgal(*row) if row is not None else None

    def _pick(
        self, where: str, params: tuple, rng: Optional[random.Random]
    ) -> Optional[Ymgal]:
        chooser = rng if rng is not None else random
        with self._lock:
            (count,) = self._conn.execute(
                f"SELECT COUNT(*) FROM ymgal WHERE {where}", params
            ).fetchone()
            if count == 0:
                return None
            row = self._conn.execute(
                f"SELECT {_COLUMNS} FROM ymgal WHERE {where} "
                "ORDER BY rowid LIMIT 1 OFFSET ?",
                params + (chooser.randrange(count),),
            ).fetchone()
        return Ymgal(*row) if row is not None else None

    def random(
        self, picture_type: str, rng: Optional[random.Random] = None
    ) -> Optional[Ymgal]:
        """A random picture set of the given kind, or None if there is none."""
        return self._pick("picture_type = ?", (picture_type,), rng)

    def search(
        self, picture_type: str, key: str, rng: Optional[random.Random] = None
    ) -> Optional[Ymgal]:
        """A random set of the kind whose title or description contains key."""
        pattern = f"%{key}%"
        return self._pick(
            "picture_type = ? AND (picture_description LIKE ? OR title LIKE ?)",
            (picture_type, pattern, pattern),
            rng,
        )


def _parse(html: Union[str, bytes]):
    return lxml_html.fromstring(html)


def _attr(element, index: int) -> str:
    values = list(element.attrib.values())
    if len(values) <= index:
        raise ValueError("element lacks the expected attribute")
    return values[index]


def _find_one(doc, xpath: str):
    found = doc.xpath(xpath)
    if not found:
        raise ValueError(f"nothing found at {xpath}")
    return found[0]


def parse_page_number(html: Union[str, bytes]) -> int:
    """Number of the last result page, read from the pager."""
    return int(str(_find_one(_parse(html), _PAGE_NUMBER_XPATH)).strip())


def parse_pic_ids(html: Union[str, bytes]) -> list[str]:
    """Picture-set ids linked from a search result page, in page order."""
    ids = []
    for link in _parse(html).xpath(_PIC_ID_XPATH):
        values = list(link.attrib.values())
        if not values:
            continue
        found = _NUMBER.search(values[0])
        if found:
            ids.append(found.group())
    return ids


def _parse_picset(html: Union[str, bytes], item_xpath: str) -> tuple[str, str, list[str]]:
    doc = _parse(html)
    title = _attr(_find_one(doc, "//meta[@name='name']"), 1)
    description = _attr(_find_one(doc, "//meta[@name='description']"), 1)
    count_text = str(_find_one(doc, _PICTURE_COUNT_XPATH))
    found = _NUMBER.search(count_text)
    if found is None:
        raise ValueError(f"no picture count in {count_text!r}")
    pictures = [
        _attr(_find_one(doc, item_xpath.format(i)), 1)
        for i in range(1, int(found.group()) + 1)
    ]
    return title, description, pictures


def parse_cg_page(html: Union[str, bytes]) -> tuple[str, str, list[str]]:
    """Title, description and picture URLs of a CG picture-set page."""
    return _parse_picset(html, _CG_ITEM_XPATH)


def parse_emoticon_page(html: Union[str, bytes]) -> tuple[str, str, list[str]]:
    """Title, description and picture URLs of a sticker picture-set page."""
    return _parse_picset(html, _EMOTICON_ITEM_XPATH)


class YmgalScraper:
    """Walk the site's search pages and store picture sets not yet known."""

    def __init__(
        self, session: Optional[requests.Session] = None, delay: float = 0.5
    ) -> None:
        self._session = session if session is not None else requests.Session()
        self._delay = delay

    def _get(self, url: str) -> str:
        response = self._session.get(url, timeout=TIMEOUT)
        response.raise_for_status()
        return response.content.decode("utf-8", errors="replace")

    def _pause(self) -> None:
        if self._delay > 0:
            time.sleep(self._delay)

    def _collect_ids(self, base_url: str, max_page: int) -> list[str]:
        ids: list[str] = []
        for page in range(1, max_page + 1):
            ids.extend(parse_pic_ids(self._get(base_url + str(page))))
            self._pause()
        return ids

    def _store_new(self, db: YmgalDB, ids: list[str], picture_type: str) -> int:
        parser = parse_cg_page if picture_type == CG_TYPE else parse_emoticon_page
        stored = 0
        for pic_id in reversed(ids):
            existing = db.get_by_id(pic_id)
            if existing is not None and existing.picture_list != "":
                break
            title, description, pictures = parser(self._get(WEB_PIC_URL + pic_id))
            db.upsert(int(pic_id), title, picture_type, description, ",".join(pictures))
            stored += 1
            self._pause()
        return stored

    def update(self, db: YmgalDB) -> int:
        """Fetch new picture sets into db, newest last; return how many were stored."""
        max_cg = parse_page_number(self._get(CG_URL + "1"))
        max_emoticon = parse_page_number(self._get(EMOTICON_URL + "1"))
        cg_ids = self._collect_ids(CG_URL, max_cg)
        emoticon_ids = self._collect_ids(EMOTICON_URL, max_emoticon)
        stored = self._store_new(db, cg_ids, CG_TYPE)
        stored += self._store_new(db, emoticon_ids, EMOTICON_TYPE)
        return stored