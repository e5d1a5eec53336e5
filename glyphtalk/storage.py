#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import base64
import json
import os
import sys
import threading
from typing import Dict, Optional, Tuple

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from glyphtalk.alphabet import SEPARATOR_AUTO, AlphabetDefinition, ValidationError
from glyphtalk.codec import COMPRESSION_MODES, COMPRESSION_SMART


STORE_TEXT_ENC_PREFIX = "enc1:"
STORE_VERSION = 1


def maybe_set_private_umask() -> None:
    # Best-effort: make newly created files private on POSIX.
    if sys.platform.startswith("win"):
        return
    try:
        os.umask(0o077)
    except OSError:
        pass


def harden_dir(path: str) -> None:
    if not path:
        return
    try:
        os.makedirs(path, exist_ok=True)
    except OSError:
        return
    if sys.platform.startswith("win"):
        return
    try:
        os.chmod(path, 0o700)
    except OSError:
        pass


def harden_file(path: str) -> None:
    if not path:
        return
    if sys.platform.startswith("win"):
        return
    try:
        os.chmod(path, 0o600)
    except OSError:
        pass


def _store_encrypt_str(text: str, key: Optional[bytes], aad: bytes) -> str:
    if not key:
        return text
    nonce = os.urandom(12)
    ct = AESGCM(key).encrypt(nonce, text.encode("utf-8"), aad)
    return STORE_TEXT_ENC_PREFIX + base64.b64encode(nonce + ct).decode("ascii")


def _store_decrypt_str(value: str, key: Optional[bytes], aad: bytes) -> Optional[str]:
    if not value.startswith(STORE_TEXT_ENC_PREFIX):
        return value
    if not key:
        return None
    payload = value[len(STORE_TEXT_ENC_PREFIX):]
    try:
        raw = base64.b64decode(payload.encode("ascii"), validate=True)
        if len(raw) < (12 + 16):
            return None
        nonce = raw[:12]
        ct = raw[12:]
        pt = AESGCM(key).decrypt(nonce, ct, aad)
        return pt.decode("utf-8", errors="strict")
    except (ValueError, InvalidTag):
        return None


def codec_settings(cfg: Dict[str, object]) -> Tuple[str, str]:
    """Return (compression, separator) from a config dict, with defaults."""
    compression = str(cfg.get("compression") or COMPRESSION_SMART).strip().lower()
    if compression not in COMPRESSION_MODES:
        compression = COMPRESSION_SMART
    separator = cfg.get("separator")
    if not isinstance(separator, str) or not separator:
        separator = SEPARATOR_AUTO
    return compression, separator


class Storage:
    def __init__(
        self,
        config_file: str,
        alphabets_file: str,
        runtime_log_file: str,
        keydir: str,
    ) -> None:
        self.config_file = config_file
        self.alphabets_file = alphabets_file
        self.runtime_log_file = runtime_log_file
        self.keydir = keydir
        self.storage_key_file = os.path.join(keydir, "storage.key") if keydir else ""
        self.storage_key: Optional[bytes] = None
        self.runtime_log_enabled = False
        self._runtime_log_lock = threading.Lock()
        self._alphabets_lock = threading.Lock()

    def set_runtime_log_enabled(self, enabled: bool) -> None:
        self.runtime_log_enabled = bool(enabled)

    def ensure_storage_key(self) -> Optional[bytes]:
        if self.storage_key:
            return self.storage_key
        if not self.storage_key_file:
            return None
        harden_dir(os.path.dirname(self.storage_key_file) or ".")
        # Load existing key
        try:
            if os.path.isfile(self.storage_key_file):
                with open(self.storage_key_file, "r", encoding="utf-8") as f:
                    raw = base64.b64decode(f.read().strip().encode("ascii"), validate=True)
                if len(raw) == 32:
                    self.storage_key = raw
                    harden_file(self.storage_key_file)
                    return self.storage_key
        except (OSError, ValueError):
            pass
        # Create new key
        try:
            raw = AESGCM.generate_key(bit_length=256)
            tmp = self.storage_key_file + ".tmp"
            with open(tmp, "w", encoding="utf-8") as f:
                f.write(base64.b64encode(raw).decode("ascii"))
            os.replace(tmp, self.storage_key_file)
            harden_file(self.storage_key_file)
            self.storage_key = raw
            return self.storage_key
        except OSError:
            return None

    def append_runtime_log(self, line: str) -> None:
        if not line:
            return
        if not self.runtime_log_enabled:
            return
        try:
            harden_dir(os.path.dirname(self.runtime_log_file) or ".")
            with self._runtime_log_lock:
                with open(self.runtime_log_file, "a", encoding="utf-8") as f:
                    f.write(line + "\n")
            harden_file(self.runtime_log_file)
        except OSError:
            pass

    def clear_runtime_log(self) -> None:
        try:
            harden_dir(os.path.dirname(self.runtime_log_file) or ".")
            with self._runtime_log_lock:
                with open(self.runtime_log_file, "w", encoding="utf-8") as f:
                    f.write("")
            harden_file(self.runtime_log_file)
        except OSError:
            pass

    def load_config(self) -> Dict[str, object]:
        if not os.path.isfile(self.config_file):
            return {}
        try:
            with open(self.config_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError):
            return {}
        return data if isinstance(data, dict) else {}

    def save_config(self, cfg: Dict[str, object]) -> None:
        tmp = self.config_file + ".tmp"
        harden_dir(os.path.dirname(self.config_file) or ".")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(cfg, f, ensure_ascii=False)
        os.replace(tmp, self.config_file)
        harden_file(self.config_file)

    def _read_alphabet_records(self) -> Dict[str, Dict[str, object]]:
        if not os.path.isfile(self.alphabets_file):
            return {}
        try:
            with open(self.alphabets_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError):
            return {}
        items = data.get("alphabets") if isinstance(data, dict) else None
        if not isinstance(items, dict):
            return {}
        return {
            key: rec
            for key, rec in items.items()
            if isinstance(key, str) and key and isinstance(rec, dict)
        }

    def _decode_alphabet_record(self, key: str, rec: Dict[str, object]) -> Optional[AlphabetDefinition]:
        rec = dict(rec)
        chars = rec.get("chars")
        if isinstance(chars, str):
            aad = f"alphabet|{key}".encode("utf-8", errors="replace")
            plain = _store_decrypt_str(chars, self.storage_key, aad)
            if plain is None:
                return None
            try:
                rec["chars"] = json.loads(plain)
            except ValueError:
                return None
        try:
            return AlphabetDefinition.from_dict(rec)
        except ValidationError:
            return None

    def load_user_alphabets(self) -> Dict[str, AlphabetDefinition]:
        """Load user alphabets; records that fail to decrypt or validate are skipped."""
        out: Dict[str, AlphabetDefinition] = {}
        for key, rec in self._read_alphabet_records().items():
            definition = self._decode_alphabet_record(key, rec)
            if definition is not None:
                out[key] = definition
        return out

    def save_user_alphabets(self, alphabets: Dict[str, AlphabetDefinition]) -> None:
        # Records this key cannot read are carried over untouched.
        flat: Dict[str, Dict[str, object]] = {
            key: rec
            for key, rec in self._read_alphabet_records().items()
            if key not in alphabets and self._decode_alphabet_record(key, rec) is None
        }
        for key, definition in alphabets.items():
            rec = definition.to_dict()
            if self.storage_key:
                aad = f"alphabet|{key}".encode("utf-8", errors="replace")
                rec["chars"] = _store_encrypt_str(
                    json.dumps(list(definition.chars), ensure_ascii=False),
                    self.storage_key,
                    aad,
                )
            flat[key] = rec
        data = {"version": STORE_VERSION, "alphabets": flat}
        tmp = self.alphabets_file + ".tmp"
        harden_dir(os.path.dirname(self.alphabets_file) or ".")
        with self._alphabets_lock:
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp, self.alphabets_file)
        harden_file(self.alphabets_file)

    def add_user_alphabet(self, key: str, definition: AlphabetDefinition) -> None:
        alphabets = self.load_user_alphabets()
        alphabets[key] = definition
        self.save_user_alphabets(alphabets)

    def remove_user_alphabet(self, key: str) -> bool:
        alphabets = self.load_user_alphabets()
        if key not in alphabets:
            return False
        del alphabets[key]
        self.save_user_alphabets(alphabets)
        return True
