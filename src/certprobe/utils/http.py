"""HTTP helpers for the revocation checker.

Bounded reads of OCSP responses and AIA issuer certificates, so a
misbehaving responder cannot exhaust memory. Every request is bounded by the
probe deadline's remaining time.

Note:
    This module depends only on ``aiohttp`` and the
    [Deadline][certprobe.utils.deadline.Deadline] value; it knows nothing
    about OCSP itself.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import aiohttp


if TYPE_CHECKING:
    from .deadline import Deadline


MAX_RESPONSE_SIZE = 1024 * 1024


async def _read_bounded(response: aiohttp.ClientResponse, max_size: int) -> bytes:
    """Read an entire response body with size enforcement.

    Accumulates chunks until EOF or the size limit is exceeded. Unlike a
    single ``response.content.read(n)`` call, this handles chunked
    transfer-encoding where one read may return fewer bytes than requested.

    Raises:
        ValueError: If the response body exceeds *max_size*.
    """
    chunks: list[bytes] = []
    total = 0
    while True:
        chunk = await response.content.read(max_size + 1 - total)
        if not chunk:
            break
        total += len(chunk)
        if total > max_size:
            raise ValueError(f"Response body too large: >{max_size} bytes")
        chunks.append(chunk)
    return b"".join(chunks)


async def fetch_bytes(
    url: str,
    deadline: Deadline,
    *,
    data: bytes | None = None,
    content_type: str | None = None,
    max_size: int = MAX_RESPONSE_SIZE,
) -> bytes:
    """GET ``url`` (or POST ``data`` when given) and return the body.

    Args:
        url: Absolute ``http(s)`` URL.
        deadline: Probe deadline bounding the whole request.
        data: Request body; switches the method to POST.
        content_type: ``Content-Type`` header for the request body.
        max_size: Maximum accepted body size in bytes.

    Raises:
        aiohttp.ClientError: On connection failures and non-2xx statuses.
        TimeoutError: If the deadline expires first.
        ValueError: If the body exceeds *max_size*.
    """
    client_timeout = aiohttp.ClientTimeout(total=deadline.remaining())
    headers = {"Content-Type": content_type} if content_type else None
    method = "POST" if data is not None else "GET"
    async with (
        aiohttp.ClientSession(timeout=client_timeout) as session,
        session.request(method, url, data=data, headers=headers) as response,
    ):
        response.raise_for_status()
        return await _read_bounded(response, max_size)
