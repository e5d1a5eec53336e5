#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Glyph codec: text <-> Base64 <-> glyph token stream.

encode: UTF-8 text -> envelope (plain or LZ-compressed, whichever Base64 is
shorter in "smart" mode) -> Base64 -> one glyph per symbol, '=' kept as-is,
joined by a separator only when the alphabet is ambiguous.
decode runs the same stages backwards.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple, Union

from glyphtalk_utils import (
    BASE64_PAD,
    COMPRESS_TAG,
    CompressedEnvelope,
    Envelope,
    PlainEnvelope,
    compression_method_from_wire,
    envelope_from_wire,
    envelope_to_wire,
    from_base64,
    to_base64,
)
from glyphtalk.alphabet import (
    SEPARATOR_AUTO,
    AlphabetDefinition,
    AlphabetTable,
    ValidationError,
    check_separator,
    select_separator,
)
from glyphtalk.tokenizer import UnparseableTokenError, split_tokens
from text_compression import compress, decompress

COMPRESSION_SMART = "smart"
COMPRESSION_NONE = "none"
COMPRESSION_MODES = (COMPRESSION_SMART, COMPRESSION_NONE)

AlphabetLike = Union[AlphabetTable, AlphabetDefinition, Sequence[str]]


class EncodeError(ValueError):
    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.cause = cause


class DecodeError(ValueError):
    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.cause = cause


class UnknownTokenError(DecodeError):
    def __init__(self, token: str, position: int, cause: Optional[BaseException] = None) -> None:
        preview = token if len(token) <= 32 else token[:32] + "..."
        super().__init__(f"unknown glyph at token {position}: {preview!r}", cause=cause)
        self.token = token
        self.position = position


@dataclass(frozen=True)
class CodecOptions:
    compression: str = COMPRESSION_SMART
    separator: str = SEPARATOR_AUTO

    def __post_init__(self) -> None:
        if self.compression not in COMPRESSION_MODES:
            raise ValidationError(
                f"compression must be one of {', '.join(COMPRESSION_MODES)}, got {self.compression!r}"
            )
        if not isinstance(self.separator, str) or not self.separator:
            raise ValidationError("separator must be 'auto' or a non-empty literal string")


def resolve_table(alphabet: AlphabetLike) -> AlphabetTable:
    if isinstance(alphabet, AlphabetTable):
        return alphabet
    if isinstance(alphabet, AlphabetDefinition):
        return alphabet.table
    return AlphabetTable(alphabet)


def resolve_separator(table: AlphabetTable, separator: Optional[str] = SEPARATOR_AUTO) -> Optional[str]:
    """Separator used for this alphabet, or None for bare concatenation."""
    if not table.requires_separator:
        return None
    if separator is None or separator == SEPARATOR_AUTO:
        return select_separator(table)
    return check_separator(separator, table.glyphs)


def _require_reversible(table: AlphabetTable) -> None:
    if table.has_duplicates:
        raise ValidationError("alphabet repeats a glyph; repeated glyphs cannot be decoded back to one symbol")


def pack_payload(text: str, compression: str = COMPRESSION_SMART) -> Tuple[str, Envelope]:
    """Pick the envelope for text and return (base64 symbols, envelope)."""
    if compression not in COMPRESSION_MODES:
        raise ValidationError(f"compression must be one of {', '.join(COMPRESSION_MODES)}, got {compression!r}")
    plain_b64 = to_base64(text.encode("utf-8"))
    plain_env = PlainEnvelope(text=text)
    # Plain text carrying the tag would be misread as compressed on decode.
    forced = text.startswith(COMPRESS_TAG)
    if compression == COMPRESSION_NONE and not forced:
        return plain_b64, plain_env
    packed_env = CompressedEnvelope(data=compress(text).compressed_bytes)
    packed_b64 = to_base64(envelope_to_wire(packed_env).encode("utf-8"))
    if forced or len(packed_b64) < len(plain_b64):
        return packed_b64, packed_env
    return plain_b64, plain_env


def unpack_payload(symbols: str) -> str:
    wire = from_base64(symbols).decode("utf-8", errors="strict")
    env = envelope_from_wire(wire)
    if isinstance(env, CompressedEnvelope):
        return decompress(env.data, strict=True)
    return env.text


def symbols_to_tokens(symbols: str, table: AlphabetTable) -> List[str]:
    out: List[str] = []
    for ch in symbols:
        if ch == BASE64_PAD:
            out.append(BASE64_PAD)
        else:
            out.append(table.glyph_for(ch))
    return out


def tokens_to_symbols(tokens: Sequence[str], table: AlphabetTable) -> str:
    out: List[str] = []
    for pos, tok in enumerate(tokens):
        if tok == BASE64_PAD:
            out.append(BASE64_PAD)
            continue
        sym = table.symbol_for(tok)
        if sym is None:
            raise UnknownTokenError(tok, pos)
        out.append(sym)
    return "".join(out)


def _encode_parts(
    text: str,
    alphabet: AlphabetLike,
    compression: str,
    separator: Optional[str],
) -> Tuple[str, str, Envelope]:
    """Return (token stream, base64 symbols, envelope) for one encode."""
    try:
        if not isinstance(text, str):
            raise ValidationError("text must be str")
        table = resolve_table(alphabet)
        _require_reversible(table)
        sep = resolve_separator(table, separator)
        symbols, env = pack_payload(text, compression)
        return (sep or "").join(symbols_to_tokens(symbols, table)), symbols, env
    except EncodeError:
        raise
    except ValueError as exc:
        raise EncodeError(f"encode failed: {exc}", cause=exc) from exc


def encode(
    text: str,
    alphabet: AlphabetLike,
    compression: str = COMPRESSION_SMART,
    separator: Optional[str] = SEPARATOR_AUTO,
) -> str:
    return _encode_parts(text, alphabet, compression, separator)[0]


def decode(
    tokens: str,
    alphabet: AlphabetLike,
    separator: Optional[str] = SEPARATOR_AUTO,
) -> str:
    try:
        if not isinstance(tokens, str):
            raise ValidationError("token stream must be str")
        table = resolve_table(alphabet)
        _require_reversible(table)
        sep = resolve_separator(table, separator)
        try:
            parts = split_tokens(tokens, table, sep)
        except UnparseableTokenError as exc:
            raise UnknownTokenError(exc.remainder, exc.position, cause=exc) from exc
        return unpack_payload(tokens_to_symbols(parts, table))
    except DecodeError:
        raise
    except ValueError as exc:
        raise DecodeError(f"decode failed: {exc}", cause=exc) from exc


class GlyphCodec:
    """Codec bound to one alphabet and one set of options."""

    def __init__(
        self,
        alphabet: AlphabetLike,
        compression: str = COMPRESSION_SMART,
        separator: str = SEPARATOR_AUTO,
    ) -> None:
        self.options = CodecOptions(compression=compression, separator=separator)
        self.table = resolve_table(alphabet)
        self.separator = resolve_separator(self.table, self.options.separator)
        self.name = alphabet.name if isinstance(alphabet, AlphabetDefinition) else ""

    def encode(self, text: str) -> str:
        return encode(text, self.table, self.options.compression, self.options.separator)

    def decode(self, tokens: str) -> str:
        return decode(tokens, self.table, self.options.separator)

    def encode_with_stats(self, text: str) -> Tuple[str, Dict[str, object]]:
        encoded, symbols, env = _encode_parts(text, self.table, self.options.compression, self.options.separator)
        plain_bytes = len(text.encode("utf-8"))
        stats: Dict[str, object] = {
            "method": compression_method_from_wire(envelope_to_wire(env)),
            "plain_bytes": plain_bytes,
            "base64_len": len(symbols),
            "tokens": len(symbols),
            "separator": self.separator or "",
            "encoded_len": len(encoded),
        }
        if isinstance(env, CompressedEnvelope):
            stats["compressed_bytes"] = len(env.data)
            stats["ratio"] = (len(env.data) / float(plain_bytes)) if plain_bytes else 1.0
        return encoded, stats

    def describe(self) -> Dict[str, object]:
        return {
            "name": self.name,
            "ambiguous": self.table.has_ambiguity,
            "separator": self.separator or "",
            "max_glyph_len": self.table.max_glyph_len,
            "compression": self.options.compression,
        }
