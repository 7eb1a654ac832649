"""
Pool fixity source: what a storage pool says it holds.

Each pool publishes an XML service document describing where its services
live; the fixity service is the one we want:

    <?xml version="1.0" encoding="UTF-8"?>
    <services version="0.0.1">
      <create method="post" location="http://pool-one.example.com/create/%s"/>
      <fixity mime_type="text/csv" method="get" location="http://pool-one.example.com/fixity.csv"/>
      <fixity mime_type="application/xml" method="get" location="http://pool-one.example.com/fixity.xml"/>
    </services>

The CSV feed is sorted by package name and looks like:

    "name","location","sha1","md5","size","fixity_time","put_time","status"
    "E20110420_OOJGPX.000","http://silos.example.org:70/004/data/E20110420_OOJGPX.000","a5ff...","15e4...","8192","2011-04-27T11:36:03Z","2011-04-20T17:25:58Z","ok"
    ...

Feeds run to hundreds of megabytes, so the body is spooled to a temporary
file and read back one line at a time; rewinding re-reads the file rather
than the network.

Usage:
    client = make_http_client(settings)
    for pool in pools:
        stream = PoolFixityStream(pool, client=client, params={"stored_before": cutoff})
"""

from __future__ import annotations

import csv
import tempfile
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Any

import httpx

from fixity_spine.core.errors import ConfigError, ParseError, SourceUnavailableError
from fixity_spine.core.logging import get_logger
from fixity_spine.core.settings import FixitySettings
from fixity_spine.streams.protocol import CsvFileStream, Pair
from fixity_spine.streams.records import FixitySchema

log = get_logger(__name__)

CSV_MIME_TYPE = "text/csv"


@dataclass(frozen=True)
class Pool:
    """A storage pool as the store-master database describes it."""

    services_location: str
    basic_auth_username: str | None = None
    basic_auth_password: str | None = None
    required: bool = True
    read_preference: int = 0

    @property
    def name(self) -> str:
        """The pool's host; good enough to tell pools apart in reports and logs."""
        return httpx.URL(self.services_location).host or self.services_location

    @property
    def auth(self) -> httpx.BasicAuth | None:
        if self.basic_auth_username is None and self.basic_auth_password is None:
            return None
        return httpx.BasicAuth(self.basic_auth_username or "", self.basic_auth_password or "")

    @classmethod
    def from_row(cls, row: Any) -> Pool:
        """Build from a ``pools`` table row."""
        return cls(
            services_location=row.services_location,
            basic_auth_username=row.basic_auth_username,
            basic_auth_password=row.basic_auth_password,
            required=bool(row.required),
            read_preference=row.read_preference or 0,
        )


def make_http_client(
    settings: FixitySettings | None = None,
    *,
    transport: httpx.BaseTransport | None = None,
) -> httpx.Client:
    """
    An httpx client with the generous timeouts pool feeds need.

    Large pools take many minutes to start producing their fixity CSV.
    """
    settings = settings or FixitySettings()
    timeout = httpx.Timeout(
        settings.http_read_timeout,
        connect=settings.http_connect_timeout,
    )
    return httpx.Client(timeout=timeout, transport=transport)


def redact(url: httpx.URL) -> str:
    """A URL without its credentials, for messages and logs."""
    return str(url.copy_with(username=None, password=None))


def fetch_service_document(pool: Pool, client: httpx.Client) -> str:
    """GET the pool's XML service document."""
    try:
        response = client.get(pool.services_location, auth=pool.auth)
    except httpx.HTTPError as e:
        raise SourceUnavailableError(
            f"Couldn't contact the pool service at URL {pool.services_location}: {e}",
            cause=e,
        ).with_context(pool=pool.name, url=pool.services_location) from e

    if response.status_code != 200:
        raise ConfigError(
            f"Bad response when contacting the pool at {pool.services_location}, "
            f"response was {response.status_code} {response.reason_phrase}."
        ).with_context(pool=pool.name, url=pool.services_location, http_status=response.status_code)
    return response.text


def resolve_fixity_url(
    pool: Pool,
    client: httpx.Client,
    mime_type: str = CSV_MIME_TYPE,
) -> httpx.URL:
    """
    Find the URL of the pool's fixity feed in its service document.

    The pool's basic-auth credentials, if any, are carried on the returned
    URL so the feed request authenticates the same way.

    Raises:
        SourceUnavailableError: the pool couldn't be reached
        ConfigError: bad HTTP status, or no usable fixity service declared
        ParseError: the service document isn't XML
    """
    text = fetch_service_document(pool, client)

    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        raise ParseError(
            f"The service document from the pool at {pool.services_location} is not valid XML: {e}",
            cause=e,
        ).with_context(pool=pool.name, url=pool.services_location) from e

    nodes = root.findall(".//fixity")
    if root.tag == "fixity":
        nodes.insert(0, root)
    if not nodes:
        raise ConfigError(
            f"When retrieving service information from the pool at {pool.services_location}, "
            f"no fixity service was declared. The service document returned was:\n{text}"
        ).with_context(pool=pool.name, url=pool.services_location)

    for node in nodes:
        if node.get("mime_type") != mime_type:
            continue
        location = node.get("location")
        if not location:
            raise ConfigError(
                f"When retrieving service information from the pool at {pool.services_location}, "
                f"the fixity service did not include a location: {ET.tostring(node, encoding='unicode')}"
            ).with_context(pool=pool.name, url=pool.services_location)
        try:
            url = httpx.URL(location)
        except httpx.InvalidURL as e:
            raise ConfigError(
                f"The pool at {pool.services_location} declared a malformed fixity location {location!r}",
                cause=e,
            ).with_context(pool=pool.name, url=pool.services_location) from e
        if pool.basic_auth_username is not None or pool.basic_auth_password is not None:
            url = url.copy_with(
                username=pool.basic_auth_username or "",
                password=pool.basic_auth_password or "",
            )
        return url

    raise ConfigError(
        f"When retrieving service information from the pool at {pool.services_location}, "
        f"no fixity service with mime type {mime_type} could be found. "
        f"The service document returned was:\n{text}"
    ).with_context(pool=pool.name, url=pool.services_location)


class PoolFixityStream(CsvFileStream):
    """
    Stream of one pool's fixity data, keyed by package name, with
    FixityRecord values.

    The feed is fetched once, at construction. Its header row is checked
    against ``schema``; a feed of another shape raises ParseError rather than
    being misread.
    """

    def __init__(
        self,
        pool: Pool,
        client: httpx.Client | None = None,
        params: dict[str, Any] | None = None,
        schema: FixitySchema = FixitySchema.V2,
    ):
        self.pool = pool
        self.schema = schema
        self.params = dict(params or {})

        own_client = client is None
        client = client or make_http_client()
        try:
            self.url = resolve_fixity_url(pool, client)
            spool = self._fetch(client)
        finally:
            if own_client:
                client.close()

        super().__init__(spool)

    def __str__(self) -> str:
        return f"<{self.__class__.__name__} {redact(self.url)}>"

    def _fetch(self, client: httpx.Client) -> Any:
        spool = tempfile.TemporaryFile(
            mode="w+",
            encoding="utf-8",
            newline="",
            prefix=f"pool-fixity-data-{self.pool.name}-",
        )
        try:
            with client.stream("GET", self.url, params=self.params or None) as response:
                if response.status_code != 200:
                    raise ConfigError(
                        f"Bad response when contacting the pool at {redact(self.url)}, "
                        f"response was {response.status_code} {response.reason_phrase}."
                    ).with_context(pool=self.pool.name, url=redact(self.url), http_status=response.status_code)
                for chunk in response.iter_text():
                    spool.write(chunk)
        except httpx.HTTPError as e:
            spool.close()
            raise SourceUnavailableError(
                f"Error retrieving pool fixity data from {redact(self.url)}: {e}",
                cause=e,
            ).with_context(pool=self.pool.name, url=redact(self.url)) from e
        except ConfigError:
            spool.close()
            raise

        log.info(
            "pool_stream.fetched",
            pool=self.pool.name,
            url=redact(self.url),
            bytes=spool.tell(),
            schema=self.schema.value,
        )
        spool.seek(0)
        return spool

    def _skip_preamble(self) -> None:
        header = self.io.readline()
        if not header.strip():
            raise ParseError(
                f"The fixity feed from {redact(self.url)} is empty; expected a header row"
            ).with_context(pool=self.pool.name, url=redact(self.url))
        try:
            self.schema.check_header(next(csv.reader([header])))
        except ParseError as e:
            raise e.with_context(pool=self.pool.name, url=redact(self.url))

    def _make_pair(self, fields: list[str]) -> Pair:
        try:
            return self.schema.parse_row(fields)
        except ParseError as e:
            raise e.with_context(pool=self.pool.name, url=redact(self.url))
