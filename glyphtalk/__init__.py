#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
glyphtalk package

Glyph codec internals for glyphTalk.py: alphabet tables, the bare-stream
tokenizer, encode/decode orchestration and the local settings store.
glyphTalk.py stays the entrypoint; these modules are importable on their own.
"""

from __future__ import annotations
