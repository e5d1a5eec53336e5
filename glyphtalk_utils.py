#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import base64
import binascii
import re
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

BASE64_SYMBOLS = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"
BASE64_PAD = "="
SYMBOL_TO_INDEX = {ch: i for i, ch in enumerate(BASE64_SYMBOLS)}

COMPRESS_TAG = "DEFLATE|"
COMPRESS_METHOD_NONE = "none"
COMPRESS_METHOD_LZ = "lz77"

_BASE64_RE = re.compile(r"[A-Za-z0-9+/]*={0,2}")

ALPHABET_NAME_PREFIX_RE = re.compile(r"^(?:名称|name)\s*[:：]\s*", re.IGNORECASE)
ALPHABET_DESC_PREFIX_RE = re.compile(r"^(?:描述|description)\s*[:：]\s*", re.IGNORECASE)
ALPHABET_CHARS_PREFIX_RE = re.compile(r"^(?:字符|chars)\s*[:：]\s*", re.IGNORECASE)
ALPHABET_FILE_UNSAFE_RE = re.compile(r"[^a-zA-Z0-9一-龥]")


class InvalidPaddingError(ValueError):
    pass


def to_base64(data: Union[bytes, bytearray]) -> str:
    return base64.b64encode(bytes(data)).decode("ascii")


def from_base64(text: str) -> bytes:
    if not isinstance(text, str):
        raise InvalidPaddingError("base64 input must be str")
    if len(text) % 4 != 0:
        raise InvalidPaddingError(f"base64 length {len(text)} is not a multiple of 4")
    if not _BASE64_RE.fullmatch(text):
        raise InvalidPaddingError("malformed base64 padding or symbol")
    try:
        return base64.b64decode(text.encode("ascii"), validate=True)
    except binascii.Error as exc:
        raise InvalidPaddingError(str(exc)) from exc


@dataclass(frozen=True)
class PlainEnvelope:
    text: str


@dataclass(frozen=True)
class CompressedEnvelope:
    data: bytes


Envelope = Union[PlainEnvelope, CompressedEnvelope]


def envelope_to_wire(env: Envelope) -> str:
    if isinstance(env, CompressedEnvelope):
        return COMPRESS_TAG + to_base64(env.data)
    return env.text


def envelope_from_wire(wire: str) -> Envelope:
    # Tag check comes first; anything else is plain text.
    if wire.startswith(COMPRESS_TAG):
        return CompressedEnvelope(data=from_base64(wire[len(COMPRESS_TAG):]))
    return PlainEnvelope(text=wire)


def compression_method_from_wire(wire: str) -> str:
    if wire.startswith(COMPRESS_TAG):
        return COMPRESS_METHOD_LZ
    return COMPRESS_METHOD_NONE


def _split_glyph_line(line: str) -> List[str]:
    if "," in line:
        return [c.strip() for c in line.split(",") if c.strip()]
    if "|" in line:
        return [c.strip() for c in line.split("|") if c.strip()]
    if re.search(r"\s", line):
        return [c for c in re.split(r"\s+", line) if c]
    return [c for c in line if c.strip()]


def parse_alphabet_lines(content: str) -> Tuple[str, str, List[str]]:
    """Split an alphabet text file into (name, description, glyphs).

    Format (prefixes optional, ASCII or full-width colon):
        名称: <name>
        描述: <description>
        字符: g1,g2,...,g64      (',' or '|' or whitespace separated,
                                 or one glyph per character)
    Glyph lines may wrap; continuation lines are joined with a space.
    Raises ValueError when fewer than three non-empty lines are present.
    """
    lines = [ln.strip() for ln in str(content or "").strip().split("\n")]
    lines = [ln for ln in lines if ln]
    if len(lines) < 3:
        raise ValueError("alphabet file needs at least 3 lines: name, description, glyphs")
    name = ALPHABET_NAME_PREFIX_RE.sub("", lines[0], count=1)
    description = ALPHABET_DESC_PREFIX_RE.sub("", lines[1], count=1)
    chars_line = ALPHABET_CHARS_PREFIX_RE.sub("", " ".join(lines[2:]), count=1)
    return name, description, _split_glyph_line(chars_line)


def format_alphabet_lines(name: str, description: str, glyphs: Sequence[str]) -> str:
    return f"名称: {name}\n描述: {description}\n字符: {','.join(glyphs)}"


def alphabet_file_name(name: str) -> str:
    stem = ALPHABET_FILE_UNSAFE_RE.sub("_", str(name or "")) or "alphabet"
    return stem + ".txt"


def format_runtime_line(event: str, detail: str = "", ts: Optional[float] = None) -> str:
    t = time.time() if ts is None else ts
    stamp = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(t))
    detail_text = " ".join(str(detail or "").split())
    if detail_text:
        return f"{stamp} {event}: {detail_text}"
    return f"{stamp} {event}"
