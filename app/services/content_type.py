"""
Content-type detection from raw bytes.

Implements the WHATWG MIME sniffing table used by HTTP servers: only the
leading bytes of the content are inspected, never the filename or any
client-supplied header. Signatures are tried in table order and the first
match wins.
"""
from typing import List, Optional

SNIFF_LENGTH = 512

TEXT_PLAIN = "text/plain; charset=utf-8"
OCTET_STREAM = "application/octet-stream"

_WHITESPACE = b"\t\n\x0c\r "


class _ExactSig:
    def __init__(self, prefix: bytes, content_type: str):
        self.prefix = prefix
        self.content_type = content_type

    def match(self, data: bytes, first_non_ws: int) -> Optional[str]:
        if data.startswith(self.prefix):
            return self.content_type
        return None


class _MaskedSig:
    def __init__(self, mask: bytes, pattern: bytes, content_type: str, skip_ws: bool = False):
        if len(mask) != len(pattern):
            raise ValueError("mask and pattern must have the same length")
        self.mask = mask
        self.pattern = pattern
        self.content_type = content_type
        self.skip_ws = skip_ws

    def match(self, data: bytes, first_non_ws: int) -> Optional[str]:
        if self.skip_ws:
            data = data[first_non_ws:]
        if len(data) < len(self.pattern):
            return None
        for i, expected in enumerate(self.pattern):
            if data[i] & self.mask[i] != expected:
                return None
        return self.content_type


class _HtmlSig:
    def __init__(self, tag: bytes):
        self.tag = tag

    def match(self, data: bytes, first_non_ws: int) -> Optional[str]:
        data = data[first_non_ws:]
        if len(data) < len(self.tag) + 1:
            return None
        if data[: len(self.tag)].upper() != self.tag:
            return None
        # The tag must be terminated by a space or ">".
        if data[len(self.tag)] not in b" >":
            return None
        return "text/html; charset=utf-8"


class _Mp4Sig:
    def match(self, data: bytes, first_non_ws: int) -> Optional[str]:
        # An ISO base media file starts with an "ftyp" box whose brands include "mp4".
        if len(data) < 12:
            return None
        box_size = int.from_bytes(data[:4], "big")
        if len(data) < box_size or box_size % 4 != 0:
            return None
        if data[4:8] != b"ftyp":
            return None
        for start in range(8, box_size, 4):
            if start == 12:
                # minor version
                continue
            if data[start : start + 3] == b"mp4":
                return "video/mp4"
        return None


class _TextSig:
    def match(self, data: bytes, first_non_ws: int) -> Optional[str]:
        for byte in data[first_non_ws:]:
            if byte <= 0x08 or byte == 0x0B or 0x0E <= byte <= 0x1A or 0x1C <= byte <= 0x1F:
                return None
        return TEXT_PLAIN


_SIGNATURES: List = [
    _HtmlSig(b"<!DOCTYPE HTML"),
    _HtmlSig(b"<HTML"),
    _HtmlSig(b"<HEAD"),
    _HtmlSig(b"<SCRIPT"),
    _HtmlSig(b"<IFRAME"),
    _HtmlSig(b"<H1"),
    _HtmlSig(b"<DIV"),
    _HtmlSig(b"<FONT"),
    _HtmlSig(b"<TABLE"),
    _HtmlSig(b"<A"),
    _HtmlSig(b"<STYLE"),
    _HtmlSig(b"<TITLE"),
    _HtmlSig(b"<B"),
    _HtmlSig(b"<BODY"),
    _HtmlSig(b"<BR"),
    _HtmlSig(b"<P"),
    _HtmlSig(b"<!--"),
    _MaskedSig(b"\xff\xff\xff\xff\xff", b"<?xml", "text/xml; charset=utf-8", skip_ws=True),
    _ExactSig(b"%PDF-", "application/pdf"),
    _ExactSig(b"%!PS-Adobe-", "application/postscript"),
    # Byte order marks
    _MaskedSig(b"\xff\xff\x00\x00", b"\xfe\xff\x00\x00", "text/plain; charset=utf-16be"),
    _MaskedSig(b"\xff\xff\x00\x00", b"\xff\xfe\x00\x00", "text/plain; charset=utf-16le"),
    _MaskedSig(b"\xff\xff\xff\x00", b"\xef\xbb\xbf\x00", TEXT_PLAIN),
    # Images
    _ExactSig(b"\x00\x00\x01\x00", "image/x-icon"),
    _ExactSig(b"\x00\x00\x02\x00", "image/x-icon"),
    _ExactSig(b"BM", "image/bmp"),
    _ExactSig(b"GIF87a", "image/gif"),
    _ExactSig(b"GIF89a", "image/gif"),
    _MaskedSig(
        b"\xff\xff\xff\xff\x00\x00\x00\x00\xff\xff\xff\xff\xff\xff",
        b"RIFF\x00\x00\x00\x00WEBPVP",
        "image/webp",
    ),
    _ExactSig(b"\x89PNG\r\n\x1a\n", "image/png"),
    _ExactSig(b"\xff\xd8\xff", "image/jpeg"),
    # Audio and video
    _MaskedSig(
        b"\xff\xff\xff\xff\x00\x00\x00\x00\xff\xff\xff\xff",
        b"FORM\x00\x00\x00\x00AIFF",
        "audio/aiff",
    ),
    _MaskedSig(b"\xff\xff\xff", b"ID3", "audio/mpeg"),
    _MaskedSig(b"\xff\xff\xff\xff\xff", b"OggS\x00", "application/ogg"),
    _MaskedSig(b"\xff\xff\xff\xff\xff\xff\xff\xff", b"MThd\x00\x00\x00\x06", "audio/midi"),
    _MaskedSig(
        b"\xff\xff\xff\xff\x00\x00\x00\x00\xff\xff\xff\xff",
        b"RIFF\x00\x00\x00\x00AVI ",
        "video/avi",
    ),
    _MaskedSig(
        b"\xff\xff\xff\xff\x00\x00\x00\x00\xff\xff\xff\xff",
        b"RIFF\x00\x00\x00\x00WAVE",
        "audio/wave",
    ),
    _Mp4Sig(),
    _ExactSig(b"\x1a\x45\xdf\xa3", "video/webm"),
    # Fonts; embedded OpenType has "LP" after 34 bytes of header.
    _MaskedSig(b"\x00" * 34 + b"\xff\xff", b"\x00" * 34 + b"LP", "application/vnd.ms-fontobject"),
    _ExactSig(b"\x00\x01\x00\x00", "font/ttf"),
    _ExactSig(b"OTTO", "font/otf"),
    _ExactSig(b"ttcf", "font/collection"),
    _ExactSig(b"wOFF", "font/woff"),
    _ExactSig(b"wOF2", "font/woff2"),
    # Archives
    _ExactSig(b"\x1f\x8b\x08", "application/x-gzip"),
    _ExactSig(b"PK\x03\x04", "application/zip"),
    _ExactSig(b"Rar!\x1a\x07\x00", "application/x-rar-compressed"),
    _ExactSig(b"Rar!\x1a\x07\x01\x00", "application/x-rar-compressed"),
    _ExactSig(b"\x00asm", "application/wasm"),
    _TextSig(),
]


def detect_content_type(data: bytes) -> str:
    """
    Detect the MIME type of ``data``.

    At most the first 512 bytes are examined. Always returns a valid MIME
    type, falling back to "application/octet-stream" for unrecognised
    binary content.
    """
    head = bytes(data[:SNIFF_LENGTH])
    first_non_ws = len(head) - len(head.lstrip(_WHITESPACE))
    for sig in _SIGNATURES:
        content_type = sig.match(head, first_non_ws)
        if content_type:
            return content_type
    return OCTET_STREAM
