"""OpenStack Swift / Rackspace Cloud Files client over HTTP.

Implements ObjectStoreClientPort with httpx. Authorization produces an
immutable Session; every other call takes that session explicitly, so one
client can be shared by all worker threads.
"""

from __future__ import annotations

import hashlib
import json
import logging
from typing import Any, BinaryIO, Iterator, Optional, Sequence

import httpx

from object_copy.domain.entities.chunk import ManifestItem
from object_copy.domain.errors import AuthError, ManifestError, NotFoundError, TransferError
from object_copy.domain.value_objects.identifiers import ObjectLocation
from object_copy.infrastructure.config import HttpConfig, IdentityConfig
from object_copy.ports.outbound import ObjectStat, ReadResult, Session


logger = logging.getLogger(__name__)


def _strip_etag(value: str) -> str:
    return value.strip().strip('"')


def _iter_stream(source: BinaryIO, block_size: int) -> Iterator[bytes]:
    while True:
        block = source.read(block_size)
        if not block:
            break
        yield block


class SwiftObjectStore:
    """HTTP implementation of ObjectStoreClientPort.

    Example:
        store = SwiftObjectStore(IdentityConfig(username="me", api_key="secret"))
        session = store.authorize()
        stat = store.stat(session, ObjectLocation("IAD", "testing", "image.iso"))
    """

    def __init__(
        self,
        identity: IdentityConfig,
        http: Optional[HttpConfig] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        """Initialize client.

        Args:
            identity: Identity service endpoint and credentials.
            http: Timeouts and streaming block size.
            transport: Custom httpx transport (used by tests).
        """
        self.identity = identity
        self.http = http or HttpConfig()
        self._client = httpx.Client(
            transport=transport,
            timeout=httpx.Timeout(
                self.http.connect_timeout,
                read=self.http.read_timeout,
                write=self.http.write_timeout,
            ),
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "SwiftObjectStore":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    def authorize(self) -> Session:
        payload = {
            "auth": {
                "RAX-KSKEY:apiKeyCredentials": {
                    "username": self.identity.username,
                    "apiKey": self.identity.api_key.get_secret_value(),
                }
            }
        }
        try:
            response = self._client.post(self.identity.auth_url, json=payload)
        except httpx.HTTPError as e:
            raise AuthError(f"Could not reach identity service: {e}") from e

        if response.status_code != 200:
            body = response.text
            if body:
                raise AuthError(f"Could not authenticate: {body} ({response.status_code})")
            raise AuthError(f"Could not authenticate: {response.status_code}")

        try:
            access = response.json()["access"]
            token = access["token"]
            token_id = token["id"]
            tenant_id = token.get("tenant", {}).get("id", "")

            endpoints: dict[str, str] = {}
            for service in access.get("serviceCatalog", []):
                if service.get("name") == self.identity.service_name:
                    for endpoint in service.get("endpoints", []):
                        endpoints[endpoint["region"]] = endpoint["publicURL"]
                    break
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise AuthError(f"Malformed identity response: {e!r}") from e

        logger.info(f"Authorized tenant {tenant_id} with {len(endpoints)} storage regions")
        return Session(token=token_id, tenant_id=tenant_id, endpoints=endpoints)

    # ------------------------------------------------------------------
    # Objects
    # ------------------------------------------------------------------

    def stat(self, session: Session, location: ObjectLocation) -> ObjectStat:
        url = self._url(session, location)
        try:
            response = self._client.head(url, headers=self._headers(session))
        except httpx.HTTPError as e:
            raise TransferError(f"Could not stat {location}: {e}", stage="stat") from e

        if response.status_code == 404:
            raise NotFoundError(f"Could not fetch cloud file {location}, status: 404")
        if response.status_code != 200:
            raise TransferError(
                f"Could not fetch cloud file {location}, status: {response.status_code}",
                stage="stat",
            )
        try:
            size = int(response.headers["Content-Length"])
        except (KeyError, ValueError) as e:
            raise TransferError(f"Could not determine content length of {location}", stage="stat") from e
        return ObjectStat(size=size, etag=_strip_etag(response.headers.get("ETag", "")))

    def ranged_read(
        self,
        session: Session,
        location: ObjectLocation,
        offset: int,
        length: int,
        sink: BinaryIO,
    ) -> ReadResult:
        url = self._url(session, location)
        headers = self._headers(session)
        if length > 0:
            # HTTP ranges are inclusive of the last byte
            headers["Range"] = f"bytes={offset}-{offset + length - 1}"

        hasher = hashlib.md5()
        size = 0
        try:
            with self._client.stream("GET", url, headers=headers) as response:
                if response.status_code not in (200, 206):
                    raise TransferError(
                        f"Could not fetch cloud file {location}, status: {response.status_code}"
                    )
                # The service etag covers the whole object, so ranges are hashed locally.
                for block in response.iter_bytes(self.http.stream_block_size):
                    if length > 0:
                        hasher.update(block)
                    sink.write(block)
                    size += len(block)
                service_etag = _strip_etag(response.headers.get("ETag", ""))
        except httpx.HTTPError as e:
            raise TransferError(f"Could not download {location}: {e}") from e

        etag = hasher.hexdigest() if length > 0 else service_etag
        return ReadResult(bytes_written=size, etag=etag)

    def write(self, session: Session, location: ObjectLocation, source: BinaryIO) -> str:
        url = self._url(session, location)
        headers = self._headers(session)
        headers["Content-Type"] = "application/octet-stream"
        try:
            response = self._client.put(
                url,
                headers=headers,
                content=_iter_stream(source, self.http.stream_block_size),
            )
        except httpx.HTTPError as e:
            raise TransferError(f"Could not upload {location}: {e}", stage="upload") from e

        if response.status_code != 201:
            raise TransferError(
                f"Could not put cloud file {location}, status: {response.status_code}",
                stage="upload",
            )
        return _strip_etag(response.headers.get("ETag", ""))

    def write_manifest(
        self,
        session: Session,
        location: ObjectLocation,
        items: Sequence[ManifestItem],
    ) -> None:
        url = self._url(session, location)
        headers = self._headers(session)
        headers["Content-Type"] = "application/json"
        payload = json.dumps([item.to_dict() for item in items])
        try:
            response = self._client.put(
                url,
                params={"multipart-manifest": "put"},
                headers=headers,
                content=payload,
            )
        except httpx.HTTPError as e:
            raise ManifestError(f"Could not put cloud file manifest {location}: {e}") from e

        if response.status_code != 201:
            raise ManifestError(
                f"Could not put cloud file manifest, status: {response.status_code}, "
                f"error: {response.text}"
            )
        logger.info(f"Wrote manifest {location} with {len(items)} segments")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _url(session: Session, location: ObjectLocation) -> str:
        endpoint = session.endpoint_for(location.region).rstrip("/")
        return f"{endpoint}/{location.container}/{location.key}"

    @staticmethod
    def _headers(session: Session) -> dict[str, str]:
        return {"X-Auth-Token": session.token}
