"""LDAPv3 StartTLS client (RFC 4511 section 4.14).

Sends the StartTLS extended request (OID ``1.3.6.1.4.1.1466.20037``) as a
BER-encoded ``LDAPMessage`` and checks the ``resultCode`` of the extended
response. Only the handful of BER constructs these two messages use are
implemented.

Note:
    A success result only means the server agreed to upgrade. A server that
    then answers the handshake in plaintext, closes the connection or stays
    silent fails like a rejected upgrade; the establisher and the probe
    deadline handle those cases.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, NamedTuple

from certprobe.core.exceptions import UpgradeError


if TYPE_CHECKING:
    from .base import PlaintextSession


STARTTLS_OID = "1.3.6.1.4.1.1466.20037"
MAX_MESSAGE_SIZE = 64 * 1024

_TAG_SEQUENCE = 0x30
_TAG_INTEGER = 0x02
_TAG_ENUMERATED = 0x0A
_TAG_OCTET_STRING = 0x04
_TAG_EXTENDED_REQUEST = 0x77  # [APPLICATION 23] constructed
_TAG_EXTENDED_RESPONSE = 0x78  # [APPLICATION 24] constructed
_TAG_REQUEST_NAME = 0x80  # [0] primitive

RESULT_CODES: dict[int, str] = {
    0: "success",
    1: "operationsError",
    2: "protocolError",
    12: "unavailableCriticalExtension",
    51: "busy",
    52: "unavailable",
    53: "unwillingToPerform",
    80: "other",
}


class ExtendedResponse(NamedTuple):
    message_id: int
    result_code: int
    matched_dn: str
    diagnostic_message: str


def _encode_length(length: int) -> bytes:
    if length < 0x80:  # noqa: PLR2004
        return bytes([length])
    body = length.to_bytes((length.bit_length() + 7) // 8, "big")
    return bytes([0x80 | len(body)]) + body


def _tlv(tag: int, value: bytes) -> bytes:
    return bytes([tag]) + _encode_length(len(value)) + value


def _encode_integer(tag: int, value: int) -> bytes:
    return _tlv(tag, value.to_bytes(max(1, (value.bit_length() + 8) // 8), "big", signed=True))


def _decode_tlv(data: bytes, offset: int) -> tuple[int, bytes, int]:
    """Decode one TLV at ``offset``; return ``(tag, value, next_offset)``."""
    try:
        tag = data[offset]
        first = data[offset + 1]
        offset += 2
        if first & 0x80:
            size = first & 0x7F
            length = int.from_bytes(data[offset : offset + size], "big")
            offset += size
        else:
            length = first
    except IndexError as e:
        raise UpgradeError("truncated LDAP response") from e
    end = offset + length
    if end > len(data):
        raise UpgradeError("truncated LDAP response")
    return tag, data[offset:end], end


def encode_starttls_request(message_id: int) -> bytes:
    """Encode ``LDAPMessage{messageID, ExtendedRequest{requestName=StartTLS}}``."""
    request = _tlv(_TAG_EXTENDED_REQUEST, _tlv(_TAG_REQUEST_NAME, STARTTLS_OID.encode("ascii")))
    return _tlv(_TAG_SEQUENCE, _encode_integer(_TAG_INTEGER, message_id) + request)


def decode_extended_response(message: bytes) -> ExtendedResponse:
    """Decode the body of an ``LDAPMessage`` carrying an ExtendedResponse.

    Args:
        message: Contents of the outer SEQUENCE (without its tag and length).

    Raises:
        UpgradeError: If the message is not an ExtendedResponse.
    """
    tag, raw_id, offset = _decode_tlv(message, 0)
    if tag != _TAG_INTEGER:
        raise UpgradeError("malformed LDAP response: missing messageID")
    tag, op, _ = _decode_tlv(message, offset)
    if tag != _TAG_EXTENDED_RESPONSE:
        raise UpgradeError(f"unexpected LDAP response operation 0x{tag:02x}")

    tag, raw_code, offset = _decode_tlv(op, 0)
    if tag != _TAG_ENUMERATED:
        raise UpgradeError("malformed LDAP response: missing resultCode")
    tag, matched_dn, offset = _decode_tlv(op, offset)
    if tag != _TAG_OCTET_STRING:
        raise UpgradeError("malformed LDAP response: missing matchedDN")
    tag, diagnostic, offset = _decode_tlv(op, offset)
    if tag != _TAG_OCTET_STRING:
        raise UpgradeError("malformed LDAP response: missing diagnosticMessage")

    return ExtendedResponse(
        message_id=int.from_bytes(raw_id, "big", signed=True),
        result_code=int.from_bytes(raw_code, "big"),
        matched_dn=matched_dn.decode("utf-8", "replace"),
        diagnostic_message=diagnostic.decode("utf-8", "replace"),
    )


class LdapClient:
    """Minimal LDAPv3 client that can only issue the StartTLS extended operation."""

    def __init__(self, session: PlaintextSession) -> None:
        self._session = session
        self._message_id = 0

    async def _read_message(self) -> bytes:
        header = await self._session.read_exactly(2)
        if header[0] != _TAG_SEQUENCE:
            raise UpgradeError(f"unexpected LDAP message tag 0x{header[0]:02x}")
        length = header[1]
        if length & 0x80:
            size = length & 0x7F
            if size == 0 or size > 4:  # noqa: PLR2004
                raise UpgradeError("unsupported LDAP length encoding")
            length = int.from_bytes(await self._session.read_exactly(size), "big")
        if length > MAX_MESSAGE_SIZE:
            raise UpgradeError(f"LDAP response too large: {length} bytes")
        return await self._session.read_exactly(length)

    async def start_tls(self) -> ExtendedResponse:
        """Request StartTLS and require a ``success`` result.

        Raises:
            UpgradeError: If the server returns any other result code.
        """
        self._message_id += 1
        await self._session.send_bytes(encode_starttls_request(self._message_id))
        response = decode_extended_response(await self._read_message())
        if response.result_code != 0:
            name = RESULT_CODES.get(response.result_code, str(response.result_code))
            detail = f": {response.diagnostic_message}" if response.diagnostic_message else ""
            raise UpgradeError(f"LDAP StartTLS rejected ({name}){detail}")
        return response
