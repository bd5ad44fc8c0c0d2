"""Code-page byte resolution and the text codec used for names and character fields."""
from __future__ import annotations
import codecs
from enum import Enum

from . import config


class Codepage(Enum):
    NOT_SET = "notset"
    IBM866 = "ibm866"
    WINDOWS1251 = "windows1251"
    UNSPECIFIED = "unspecified"


_CODEPAGE_BY_BYTE = {
    0: Codepage.NOT_SET,
    38: Codepage.IBM866,
    101: Codepage.IBM866,
    201: Codepage.WINDOWS1251,
}

_ENCODING_BY_CODEPAGE = {
    Codepage.IBM866: "cp866",
    Codepage.WINDOWS1251: "cp1251",
}


def resolve_codepage(byte: int) -> Codepage:
    return _CODEPAGE_BY_BYTE.get(byte, Codepage.UNSPECIFIED)


class TextCodec:
    """bytes <-> str，编码由代码页决定；未知代码页退回 config.FALLBACK_ENCODING。"""

    def __init__(self, encoding: str):
        # 提前校验编码名
        self.encoding = codecs.lookup(encoding).name

    def decode(self, raw: bytes) -> str:
        # 字符字段以空格/NUL 填充
        return raw.decode(self.encoding, errors="replace").rstrip(" \x00")

    def encode(self, text: str) -> bytes:
        return text.encode(self.encoding, errors="replace")

    def encode_fit(self, text: str, length: int) -> bytes:
        """编码后截到至多 length 字节，只在字符边界处截断（多字节编码不留半个字符）。"""
        raw = self.encode(text)
        if len(raw) <= length:
            return raw
        return raw[:length].decode(self.encoding, errors="ignore").encode(self.encoding)

    def __repr__(self) -> str:
        return f"TextCodec({self.encoding!r})"


def codec_for(codepage: Codepage) -> TextCodec:
    return TextCodec(_ENCODING_BY_CODEPAGE.get(codepage, config.FALLBACK_ENCODING))
