"""RFC 2047 encoded-word decoding for header values such as Subject.

Only a single encoded word spanning the whole value is recognised
(``=?charset?B?text?=``).  Values made of several encoded words, or mixing
plain and encoded text, are left as they are.  Quoted-printable (``Q``)
words are not supported and are reported as degraded.
"""

from __future__ import annotations

import base64
import binascii

from .charset import CharsetRegistry, Decoded


def is_encoded_word(value: str) -> bool:
    return value.startswith("=?") and value.endswith("?=")


def decode_mime_header(raw: str, charsets: CharsetRegistry) -> Decoded:
    """Decode *raw* if it is an encoded word, otherwise return it unchanged.

    A degraded result always carries *raw* verbatim as its value.
    """
    if not is_encoded_word(raw):
        return Decoded(raw)

    sections = raw.split("?")
    if len(sections) != 5:
        return Decoded(raw, error="invalid MIME encoding format")

    charset = sections[1].lower()
    encoding = sections[2].lower()
    encoded_text = sections[3]

    if encoding != "b":
        return Decoded(raw, error=f"unsupported MIME encoding {sections[2]!r}")

    try:
        data = base64.b64decode(encoded_text, validate=True)
    except binascii.Error as exc:
        return Decoded(raw, error=f"invalid base64: {exc}")

    decoded = charsets.decode(data, charset)
    if decoded.degraded:
        return Decoded(raw, error=decoded.error)
    return decoded
