#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Toy LZ77-style compressor used by the glyph codec in "smart" mode.

Record stream (no header, no entropy stage):
    literal: 0x00 <byte>
    match:   0x01 <distance> <length>   distance 1..255, length 3..255

The window/length limits match messages produced by the web client,
so existing encoded texts keep decoding byte-for-byte.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from typing import Tuple, Union

FLAG_LITERAL = 0
FLAG_MATCH = 1

WINDOW_SIZE = 255
MIN_MATCH = 3
MAX_MATCH = 255


class CompressionError(ValueError):
    pass


class DecompressionError(CompressionError):
    pass


@dataclass(frozen=True)
class CompressedPayload:
    compressed_bytes: bytes
    original_byte_length: int
    compressed_byte_length: int


def _as_bytes(data: Union[str, bytes, bytearray]) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    raise CompressionError("data must be str or bytes")


def _longest_match(raw: bytes, pos: int) -> Tuple[int, int]:
    best_dist = 0
    best_len = 0
    n = len(raw)
    for start in range(max(0, pos - WINDOW_SIZE), pos):
        length = 0
        # Match may not run into the bytes being encoded (start + length < pos).
        while (
            pos + length < n
            and start + length < pos
            and length < MAX_MATCH
            and raw[start + length] == raw[pos + length]
        ):
            length += 1
        if length > best_len and length >= MIN_MATCH:
            best_dist = pos - start
            best_len = length
            if best_len == MAX_MATCH:
                break
    return best_dist, best_len


def lz_compress_bytes(raw: Union[bytes, bytearray]) -> bytes:
    raw = bytes(raw)
    out = bytearray()
    i = 0
    n = len(raw)
    while i < n:
        dist, length = _longest_match(raw, i)
        if length >= MIN_MATCH:
            out.append(FLAG_MATCH)
            out.append(dist)
            out.append(length)
            i += length
        else:
            out.append(FLAG_LITERAL)
            out.append(raw[i])
            i += 1
    return bytes(out)


def lz_decompress_bytes(data: Union[bytes, bytearray]) -> bytes:
    """Replay a record stream.

    Tolerant by contract: copy positions outside the reconstructed output are
    skipped and a truncated trailing record ends decoding. Never raises for
    malformed records.
    """
    src = bytes(data)
    out = bytearray()
    i = 0
    n = len(src)
    while i < n:
        flag = src[i]
        i += 1
        if flag == FLAG_MATCH:
            if i + 1 >= n:
                break
            dist = src[i]
            length = src[i + 1]
            i += 2
            start = len(out) - dist
            for k in range(length):
                pos = start + k
                if 0 <= pos < len(out):
                    out.append(out[pos])
        else:
            if i < n:
                out.append(src[i])
                i += 1
    return bytes(out)


def compress(text: Union[str, bytes, bytearray]) -> CompressedPayload:
    raw = _as_bytes(text)
    packed = lz_compress_bytes(raw)
    return CompressedPayload(
        compressed_bytes=packed,
        original_byte_length=len(raw),
        compressed_byte_length=len(packed),
    )


def decompress(data: Union[bytes, bytearray], strict: bool = True) -> str:
    raw = lz_decompress_bytes(data)
    try:
        return raw.decode("utf-8", errors="strict")
    except UnicodeDecodeError as exc:
        if strict:
            raise DecompressionError(f"decompressed data is not valid UTF-8: {exc.reason}") from exc
        return ""


def array_to_base64(data: Union[bytes, bytearray]) -> str:
    return base64.b64encode(bytes(data)).decode("ascii")


def base64_to_array(text: str) -> bytes:
    try:
        return base64.b64decode(str(text).encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as exc:
        raise DecompressionError(f"compressed payload is not valid Base64: {exc}") from exc

