"""
CertSeal Canonical Encoding

Serializes a certificate claim into one exact byte string, independent of
field insertion order, locale or platform.

Rules:
- Object keys sorted by their ASCII bytes
- No whitespace between tokens (compact form)
- Integers as plain decimal digits, no leading zeros, no separators
- Strings double-quoted; only '"', '\\' and control characters escaped
- UTF-8 encoding, no BOM
- Flat objects only: values are strings or integers

The output happens to be valid JSON, but it is produced by the routine
below rather than by a general-purpose serializer so the byte contract
cannot drift with library defaults.
"""

from typing import Any, Mapping

from .claim import CertificateClaim


CANONICAL_FORM_VERSION = 1

_SHORT_ESCAPES = {
    '"': '\\"',
    '\\': '\\\\',
    '\b': '\\b',
    '\f': '\\f',
    '\n': '\\n',
    '\r': '\\r',
    '\t': '\\t',
}


def encode(claim: CertificateClaim) -> bytes:
    """
    Encode a claim into its canonical form.

    No trimming and no business validation happens here; callers must
    validate raw input first.
    """
    return canonicalize_fields(claim.to_fields())


def canonicalize_str(claim: CertificateClaim) -> str:
    """Return the canonical form as a string."""
    return encode(claim).decode('utf-8')


def canonicalize_fields(fields: Mapping[str, Any]) -> bytes:
    """
    Canonicalize a flat mapping of string keys to string or integer values.

    Returns:
        UTF-8 encoded bytes of the canonical text
    """
    for key in fields:
        if not isinstance(key, str):
            raise TypeError(f"Canonical keys must be strings, got {type(key).__name__}")
        if not key.isascii():
            raise TypeError(f"Canonical keys must be ASCII: {key!r}")

    members = [
        _encode_string(key) + ':' + _encode_value(fields[key])
        for key in sorted(fields, key=lambda k: k.encode('ascii'))
    ]
    return ('{' + ','.join(members) + '}').encode('utf-8')


def _encode_value(value: Any) -> str:
    # bool is an int subclass and must not slip through as 0/1
    if isinstance(value, bool):
        raise TypeError("Cannot canonicalize boolean values")
    if isinstance(value, int):
        return str(int(value))
    if isinstance(value, str):
        return _encode_string(value)
    raise TypeError(f"Cannot canonicalize type: {type(value).__name__}")


def _encode_string(value: str) -> str:
    out = ['"']
    for ch in value:
        escaped = _SHORT_ESCAPES.get(ch)
        if escaped is not None:
            out.append(escaped)
        elif ord(ch) < 0x20:
            out.append('\\u%04x' % ord(ch))
        else:
            out.append(ch)
    out.append('"')
    return ''.join(out)
