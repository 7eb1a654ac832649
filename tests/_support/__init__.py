"""
Test support utilities for fixity-spine tests.

Helpers that don't fit as pytest fixtures but are useful across test files:
an in-memory sorted stream, FixityRecord and CSV feed builders, and a fake
pool server for ``httpx.MockTransport``.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import httpx

from fixity_spine.streams.protocol import Pair, SortedStream
from fixity_spine.streams.records import FixityRecord

V2_HEADER = '"name","location","sha1","md5","size","fixity_time","put_time","status"'
V1_HEADER = '"name","location","sha1","md5","timestamp","status"'


class ListStream(SortedStream):
    """A sorted stream over a list of pairs; rewindable, closable."""

    def __init__(self, pairs: Iterable[Pair], name: str = "list"):
        super().__init__()
        self.pairs = list(pairs)
        self.name = name
        self._index = 0
        self._closed = False

    def __str__(self) -> str:
        return f"<ListStream {self.name}>"

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True

    def _read(self) -> Pair | None:
        if self._index >= len(self.pairs):
            return None
        pair = self.pairs[self._index]
        self._index += 1
        return pair

    def _exhausted(self) -> bool:
        return self._index >= len(self.pairs)

    def _reset(self) -> None:
        self._index = 0


def fixity(
    location: str,
    sha1: str = "a" * 40,
    md5: str = "b" * 32,
    size: int | None = 8192,
    fixity_time: str = "2026-10-18T00:00:00Z",
    put_time: str | None = "2026-01-01T00:00:00Z",
    status: str = "ok",
) -> FixityRecord:
    return FixityRecord(location, sha1, md5, size, fixity_time, put_time, status)


def pool_stream(pool: str, *names: str, name: str | None = None, **fields: Any) -> ListStream:
    """A pool's fixity stream holding ``names``, with locations under ``http://<pool>/data/``."""
    return ListStream(
        [(n, fixity(f"http://{pool}/data/{n}", **fields)) for n in sorted(names)],
        name=name or pool,
    )


def csv_feed(rows: Iterable[tuple[str, FixityRecord]], header: str = V2_HEADER) -> str:
    """Render a pool fixity CSV feed. ``rows`` are (name, FixityRecord) pairs."""
    lines = [header]
    for name, record in rows:
        fields = [
            name,
            record.location,
            record.sha1,
            record.md5,
            "" if record.size is None else str(record.size),
            record.fixity_time,
            record.put_time or "",
            record.status,
        ]
        lines.append(",".join(f'"{field}"' for field in fields))
    return "\n".join(lines) + "\n"


def services_document(fixity_location: str, mime_type: str = "text/csv") -> str:
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<services version="0.0.1">\n'
        '  <create method="post" location="http://pool.example.org/create/%s"/>\n'
        f'  <fixity mime_type="application/xml" method="get" location="{fixity_location}.xml"/>\n'
        f'  <fixity mime_type="{mime_type}" method="get" location="{fixity_location}"/>\n'
        "</services>\n"
    )


class FakePoolServer:
    """
    Serves pool service documents and fixity feeds to an httpx.MockTransport.

    ``routes`` maps full URLs (without query) to (status, body). Every request
    is kept in ``requests``.
    """

    def __init__(self) -> None:
        self.routes: dict[str, tuple[int, str]] = {}
        self.requests: list[httpx.Request] = []

    def add_pool(self, host: str, feed: str) -> str:
        services = f"http://{host}/services"
        fixity_url = f"http://{host}/fixity.csv"
        self.routes[services] = (200, services_document(fixity_url))
        self.routes[fixity_url] = (200, feed)
        return services

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        port = f":{request.url.port}" if request.url.port else ""
        url = f"{request.url.scheme}://{request.url.host}{port}{request.url.path}"
        status, body = self.routes.get(url, (404, "not found"))
        return httpx.Response(status, text=body)

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self))
