#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Encode text into user-chosen glyph alphabets (Base64 substitution with optional LZ compression) and back.
ZH: 将文本编码为自定义字符集（Base64 替换，可选 LZ 压缩），并可解码还原。
"""

from __future__ import annotations

import argparse
import os
import sys
from typing import Dict, List, Optional

from glyphtalk_utils import format_runtime_line
from glyphtalk.alphabet import (
    DEFAULT_PRESET,
    PRESETS,
    AlphabetDefinition,
    ValidationError,
    export_file_name,
    format_alphabet_text,
    parse_alphabet_text,
)
from glyphtalk.codec import COMPRESSION_MODES, DecodeError, EncodeError, GlyphCodec
from glyphtalk.storage import Storage, codec_settings, harden_dir, maybe_set_private_umask


VERSION = "0.3.0"
BASE_DIR = os.path.dirname(os.path.abspath(sys.argv[0]))
DATA_DIR = os.path.join(BASE_DIR, "glyphTalk")
CONFIG_FILE = os.path.join(DATA_DIR, "config.json")
ALPHABETS_FILE = os.path.join(DATA_DIR, "alphabets.json")
RUNTIME_LOG_FILE = os.path.join(DATA_DIR, "runtime.log")
keydir = os.path.join(DATA_DIR, "keyRings")
_STORAGE = Storage(
    config_file=CONFIG_FILE,
    alphabets_file=ALPHABETS_FILE,
    runtime_log_file=RUNTIME_LOG_FILE,
    keydir=keydir,
)
COMMANDS = ("encode", "decode", "alphabets", "import", "export", "remove")
USER_KEY_PREFIX = "user_"


def set_data_dir(path: Optional[str]) -> None:
    global DATA_DIR, CONFIG_FILE, ALPHABETS_FILE, RUNTIME_LOG_FILE, keydir, _STORAGE
    DATA_DIR = os.path.abspath(path) if path else os.path.join(BASE_DIR, "glyphTalk")
    CONFIG_FILE = os.path.join(DATA_DIR, "config.json")
    ALPHABETS_FILE = os.path.join(DATA_DIR, "alphabets.json")
    RUNTIME_LOG_FILE = os.path.join(DATA_DIR, "runtime.log")
    keydir = os.path.join(DATA_DIR, "keyRings")
    _STORAGE = Storage(
        config_file=CONFIG_FILE,
        alphabets_file=ALPHABETS_FILE,
        runtime_log_file=RUNTIME_LOG_FILE,
        keydir=keydir,
    )


def append_runtime_log(event: str, detail: str = "") -> None:
    _STORAGE.append_runtime_log(format_runtime_line(event, detail))


def load_config() -> Dict[str, object]:
    return _STORAGE.load_config()


def save_config(cfg: Dict[str, object]) -> None:
    _STORAGE.save_config(cfg)


def load_user_alphabets() -> Dict[str, AlphabetDefinition]:
    return _STORAGE.load_user_alphabets()


def resolve_alphabet(key: str, user_alphabets: Dict[str, AlphabetDefinition]) -> AlphabetDefinition:
    if key in PRESETS:
        return PRESETS[key]
    if key in user_alphabets:
        return user_alphabets[key]
    raise KeyError(key)


def read_alphabet_file(path: str) -> AlphabetDefinition:
    try:
        with open(path, "r", encoding="utf-8") as f:
            content = f.read()
    except UnicodeDecodeError as e:
        raise ValidationError(f"alphabet file is not UTF-8 text: {e.reason}") from e
    return parse_alphabet_text(content)


def next_user_key(user_alphabets: Dict[str, AlphabetDefinition]) -> str:
    n = 1
    while f"{USER_KEY_PREFIX}{n}" in user_alphabets:
        n += 1
    return f"{USER_KEY_PREFIX}{n}"


def read_text_arg(value: Optional[str]) -> str:
    if value is not None and value != "-":
        return value
    data = sys.stdin.read()
    # Drop the single trailing newline a shell pipe adds.
    if data.endswith("\r\n"):
        return data[:-2]
    if data.endswith("\n"):
        return data[:-1]
    return data


def format_alphabet_row(key: str, definition: AlphabetDefinition, selected: bool) -> str:
    mark = "*" if selected else " "
    try:
        codec = GlyphCodec(definition)
        info = codec.describe()
        sep = str(info["separator"]) or "-"
        flags = f"ambiguous={'yes' if info['ambiguous'] else 'no'} separator={sep}"
    except ValidationError as e:
        flags = f"invalid ({e})"
    avatar = f"{definition.avatar} " if definition.avatar else ""
    return f"{mark} {key:<10} {avatar}{definition.name} - {definition.description} [{flags}]"


def main(argv: Optional[List[str]] = None) -> int:
    maybe_set_private_umask()
    ap = argparse.ArgumentParser(
        prog="glyphTalk.py",
        formatter_class=argparse.RawTextHelpFormatter,
        add_help=False,
    )
    ap.add_argument("-h", "--help", action="store_true", help="show this help message and exit. ZH: 显示帮助并退出。")
    ap.add_argument("--version", action="store_true", help="print version and exit. ZH: 输出版本并退出。")
    ap.add_argument(
        "command",
        nargs="?",
        choices=COMMANDS,
        help=(
            "encode | decode | alphabets | import | export | remove\n"
            "ZH: 编码 | 解码 | 列出字符集 | 导入 | 导出 | 删除"
        ),
    )
    ap.add_argument(
        "value",
        nargs="?",
        default=None,
        help=(
            "text/tokens for encode/decode ('-' or empty: stdin), file for import, key for export/remove.\n"
            "ZH: 编码/解码的文本（'-' 或留空读取标准输入），导入的文件，导出/删除的键。"
        ),
    )
    ap.add_argument("--data-dir", default=None, help="settings directory (default: ./glyphTalk). ZH: 设置目录（默认：./glyphTalk）。")
    ap.add_argument("--alphabet", default=None, help=f"preset or user alphabet key (default: {DEFAULT_PRESET}). ZH: 预设或用户字符集（默认：{DEFAULT_PRESET}）。")
    ap.add_argument("--alphabet-file", default=None, help="use an alphabet text file instead of a stored key. ZH: 直接使用字符集文本文件。")
    ap.add_argument("--compression", choices=COMPRESSION_MODES, default=None, help="smart | none (default: smart). ZH: 智能压缩 | 不压缩（默认：smart）。")
    ap.add_argument("--separator", default=None, help="'auto' or a literal separator (default: auto). ZH: 'auto' 或自定义分隔符（默认：auto）。")
    ap.add_argument("--key", default=None, help="key for import (default: user_N). ZH: 导入时使用的键（默认：user_N）。")
    ap.add_argument("--out", default=None, help="output file for export (default: <name>.txt). ZH: 导出文件（默认：<名称>.txt）。")
    ap.add_argument("--stats", action="store_true", help="print size statistics to stderr after encode. ZH: 编码后在标准错误输出统计。")
    ap.add_argument("--save", action="store_true", help="remember --alphabet/--compression/--separator in config. ZH: 将选项保存到配置。")
    ap_log = ap.add_mutually_exclusive_group()
    ap_log.add_argument("--runtime-log", dest="runtime_log", action="store_true", help="write runtime.log (default: config). ZH: 写入 runtime.log。")
    ap_log.add_argument("--no-runtime-log", dest="runtime_log", action="store_false", help="do not write runtime.log. ZH: 不写 runtime.log。")
    ap.set_defaults(runtime_log=None)

    args = ap.parse_args(argv)

    if args.help or (not args.command and not args.version):
        ap.print_help()
        return 0
    if args.version:
        print(f"glyphTalk.py v{VERSION}")
        return 0

    set_data_dir(args.data_dir)
    harden_dir(DATA_DIR)
    cfg = load_config()
    runtime_log = bool(cfg.get("runtime_log_file", False)) if args.runtime_log is None else bool(args.runtime_log)
    _STORAGE.set_runtime_log_enabled(runtime_log)
    if bool(cfg.get("encrypt_store", True)):
        _STORAGE.ensure_storage_key()

    cfg_compression, cfg_separator = codec_settings(cfg)
    compression = args.compression or cfg_compression
    separator = args.separator or cfg_separator
    alphabet_key = args.alphabet or str(cfg.get("alphabet") or DEFAULT_PRESET)
    user_alphabets = load_user_alphabets()

    if args.save:
        cfg["compression"] = compression
        cfg["separator"] = separator
        cfg["alphabet"] = alphabet_key
        save_config(cfg)

    if args.command == "alphabets":
        for key, definition in PRESETS.items():
            print(format_alphabet_row(key, definition, key == alphabet_key))
        for key, definition in sorted(user_alphabets.items()):
            print(format_alphabet_row(key, definition, key == alphabet_key))
        return 0

    if args.command == "import":
        if not args.value:
            print("ERROR: import needs an alphabet file. ZH: 需要字符集文件。", file=sys.stderr)
            return 2
        try:
            definition = read_alphabet_file(args.value)
        except (OSError, ValidationError) as e:
            print(f"ERROR: import failed: {e}", file=sys.stderr)
            append_runtime_log("IMPORT", f"failed path={args.value} err={type(e).__name__}: {e}")
            return 1
        key = args.key or next_user_key(user_alphabets)
        if key in PRESETS:
            print(f"ERROR: key {key!r} is a preset name. ZH: 该键与预设重名。", file=sys.stderr)
            return 2
        _STORAGE.add_user_alphabet(key, definition)
        append_runtime_log("IMPORT", f"key={key} name={definition.name}")
        print(f"imported {definition.name} as {key}")
        return 0

    if args.command == "remove":
        if not args.value or not _STORAGE.remove_user_alphabet(args.value):
            print(f"ERROR: no user alphabet {args.value!r}. ZH: 没有该用户字符集。", file=sys.stderr)
            return 2
        append_runtime_log("REMOVE", f"key={args.value}")
        print(f"removed {args.value}")
        return 0

    try:
        if args.alphabet_file:
            definition = read_alphabet_file(args.alphabet_file)
        else:
            definition = resolve_alphabet(args.value if args.command == "export" and args.value else alphabet_key, user_alphabets)
    except KeyError as e:
        print(f"ERROR: unknown alphabet {e}. ZH: 未知字符集。", file=sys.stderr)
        return 2
    except (OSError, ValidationError) as e:
        print(f"ERROR: cannot load alphabet: {e}", file=sys.stderr)
        return 1

    if args.command == "export":
        out_path = args.out or export_file_name(definition)
        try:
            content = format_alphabet_text(definition)
            with open(out_path, "w", encoding="utf-8") as f:
                f.write(content)
        except (OSError, ValidationError) as e:
            print(f"ERROR: export failed: {e}", file=sys.stderr)
            append_runtime_log("EXPORT", f"failed name={definition.name} path={out_path} err={type(e).__name__}")
            return 1
        append_runtime_log("EXPORT", f"name={definition.name} path={out_path}")
        print(f"exported {definition.name} -> {out_path}")
        return 0

    try:
        codec = GlyphCodec(definition, compression=compression, separator=separator)
    except ValidationError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        append_runtime_log("CODEC", f"setup failed alphabet={definition.name} err={e}")
        return 1

    text = read_text_arg(args.value)
    if args.command == "encode":
        try:
            encoded, stats = codec.encode_with_stats(text)
        except EncodeError as e:
            print(f"ERROR: {e}", file=sys.stderr)
            append_runtime_log("ENCODE", f"failed alphabet={definition.name} cause={type(e.cause).__name__}")
            return 1
        print(encoded)
        append_runtime_log(
            "ENCODE",
            f"alphabet={definition.name} bytes={stats['plain_bytes']} tokens={stats['tokens']} cmp={stats['method']}",
        )
        if args.stats:
            parts = [f"{k}={v:.2f}" if isinstance(v, float) else f"{k}={v}" for k, v in stats.items()]
            print(" ".join(parts), file=sys.stderr)
        return 0

    try:
        decoded = codec.decode(text)
    except DecodeError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        append_runtime_log("DECODE", f"failed alphabet={definition.name} cause={type(e.cause).__name__}")
        return 1
    print(decoded)
    append_runtime_log("DECODE", f"alphabet={definition.name} chars={len(decoded)}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
