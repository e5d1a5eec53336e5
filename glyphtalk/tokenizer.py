#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from typing import List, Optional, Sequence, Union

from glyphtalk_utils import BASE64_PAD
from glyphtalk.alphabet import TRIE_END, AlphabetTable, build_glyph_trie


class UnparseableTokenError(ValueError):
    def __init__(self, position: int, remainder: str) -> None:
        preview = remainder if len(remainder) <= 32 else remainder[:32] + "..."
        super().__init__(f"cannot match a glyph at offset {position}: {preview!r}")
        self.position = position
        self.remainder = remainder


def smart_split(text: str, glyphs: Union[AlphabetTable, Sequence[str]]) -> List[str]:
    """Greedy longest-match split of a bare glyph stream.

    '=' is always taken first as a one-character padding token. At every other
    position the longest glyph that is a prefix of the rest wins, which is the
    same as trying glyphs longest-first and taking the first hit.
    """
    if isinstance(glyphs, AlphabetTable):
        trie = glyphs.trie
    else:
        trie = build_glyph_trie([g for g in glyphs if g])

    out: List[str] = []
    i = 0
    n = len(text)
    while i < n:
        if text[i] == BASE64_PAD:
            out.append(BASE64_PAD)
            i += 1
            continue
        node = trie
        j = i
        best: Optional[str] = None
        while j < n:
            nxt = node.get(text[j])
            if not isinstance(nxt, dict):
                break
            node = nxt
            j += 1
            if TRIE_END in node:
                best = node[TRIE_END]
        if best is None:
            raise UnparseableTokenError(i, text[i:])
        out.append(best)
        i += len(best)
    return out


def split_tokens(text: str, table: AlphabetTable, separator: Optional[str]) -> List[str]:
    if not text:
        return []
    if separator:
        return text.split(separator)
    return smart_split(text, table)
