#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import json
import os
import tempfile
import unittest

from glyphtalk_utils import BASE64_SYMBOLS
from glyphtalk.alphabet import AlphabetDefinition
from glyphtalk.storage import STORE_TEXT_ENC_PREFIX, Storage, codec_settings


def _make_storage(root: str) -> Storage:
    return Storage(
        config_file=os.path.join(root, "config.json"),
        alphabets_file=os.path.join(root, "alphabets.json"),
        runtime_log_file=os.path.join(root, "runtime.log"),
        keydir=os.path.join(root, "keyRings"),
    )


def _sample_definition() -> AlphabetDefinition:
    return AlphabetDefinition(
        name="反转",
        description="reversed base64",
        chars=tuple(BASE64_SYMBOLS[::-1]),
        avatar="📁",
    )


class CodecSettingsTests(unittest.TestCase):
    def test_defaults(self) -> None:
        self.assertEqual(codec_settings({}), ("smart", "auto"))

    def test_values(self) -> None:
        self.assertEqual(codec_settings({"compression": " NONE ", "separator": "/"}), ("none", "/"))

    def test_invalid_values_fall_back(self) -> None:
        self.assertEqual(codec_settings({"compression": "zip", "separator": ""}), ("smart", "auto"))
        self.assertEqual(codec_settings({"separator": 5}), ("smart", "auto"))


class StorageConfigTests(unittest.TestCase):
    def test_missing_config(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            self.assertEqual(_make_storage(td).load_config(), {})

    def test_save_and_load(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            storage = _make_storage(td)
            storage.save_config({"alphabet": "poetry", "compression": "none"})
            self.assertEqual(storage.load_config(), {"alphabet": "poetry", "compression": "none"})
            self.assertFalse(os.path.exists(storage.config_file + ".tmp"))

    def test_corrupt_config(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            storage = _make_storage(td)
            with open(storage.config_file, "w", encoding="utf-8") as f:
                f.write("{not json")
            self.assertEqual(storage.load_config(), {})


class StorageAlphabetsTests(unittest.TestCase):
    def test_plain_store(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            storage = _make_storage(td)
            storage.add_user_alphabet("user_1", _sample_definition())
            with open(storage.alphabets_file, "r", encoding="utf-8") as f:
                raw = json.load(f)
            self.assertEqual(raw["version"], 1)
            self.assertEqual(raw["alphabets"]["user_1"]["chars"], list(BASE64_SYMBOLS[::-1]))
            self.assertEqual(storage.load_user_alphabets(), {"user_1": _sample_definition()})

    def test_encrypted_store(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            storage = _make_storage(td)
            key = storage.ensure_storage_key()
            self.assertIsNotNone(key)
            self.assertEqual(len(key or b""), 32)
            storage.add_user_alphabet("user_1", _sample_definition())
            with open(storage.alphabets_file, "r", encoding="utf-8") as f:
                raw = json.load(f)
            self.assertTrue(raw["alphabets"]["user_1"]["chars"].startswith(STORE_TEXT_ENC_PREFIX))

            reopened = _make_storage(td)
            self.assertEqual(reopened.ensure_storage_key(), key)
            self.assertEqual(reopened.load_user_alphabets(), {"user_1": _sample_definition()})

            # Without the key encrypted records are skipped.
            self.assertEqual(_make_storage(td).load_user_alphabets(), {})

    def test_write_without_key_keeps_encrypted_records(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            keyed = _make_storage(td)
            keyed.ensure_storage_key()
            keyed.add_user_alphabet("user_1", _sample_definition())

            keyless = _make_storage(td)
            self.assertEqual(keyless.load_user_alphabets(), {})
            keyless.add_user_alphabet("user_2", _sample_definition())
            self.assertFalse(keyless.remove_user_alphabet("user_1"))
            keyless.remove_user_alphabet("user_2")
            keyless.add_user_alphabet("user_3", _sample_definition())

            reopened = _make_storage(td)
            reopened.ensure_storage_key()
            self.assertEqual(sorted(reopened.load_user_alphabets().keys()), ["user_1", "user_3"])

    def test_overwrite_replaces_unreadable_record(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            keyed = _make_storage(td)
            keyed.ensure_storage_key()
            keyed.add_user_alphabet("user_1", _sample_definition())

            keyless = _make_storage(td)
            replacement = AlphabetDefinition(name="新", description="", chars=tuple(BASE64_SYMBOLS))
            keyless.add_user_alphabet("user_1", replacement)
            self.assertEqual(keyless.load_user_alphabets(), {"user_1": replacement})

    def test_invalid_record_skipped(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            storage = _make_storage(td)
            data = {
                "version": 1,
                "alphabets": {
                    "short": {"name": "x", "chars": ["a", "b"]},
                    "ok": _sample_definition().to_dict(),
                },
            }
            with open(storage.alphabets_file, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False)
            self.assertEqual(list(storage.load_user_alphabets().keys()), ["ok"])

    def test_remove(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            storage = _make_storage(td)
            storage.add_user_alphabet("user_1", _sample_definition())
            self.assertTrue(storage.remove_user_alphabet("user_1"))
            self.assertFalse(storage.remove_user_alphabet("user_1"))
            self.assertEqual(storage.load_user_alphabets(), {})


class StorageRuntimeLogTests(unittest.TestCase):
    def test_disabled_by_default(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            storage = _make_storage(td)
            storage.append_runtime_log("line")
            self.assertFalse(os.path.exists(storage.runtime_log_file))

    def test_append_and_clear(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            storage = _make_storage(td)
            storage.set_runtime_log_enabled(True)
            storage.append_runtime_log("first")
            storage.append_runtime_log("")
            storage.append_runtime_log("second")
            with open(storage.runtime_log_file, "r", encoding="utf-8") as f:
                self.assertEqual(f.read(), "first\nsecond\n")
            storage.clear_runtime_log()
            with open(storage.runtime_log_file, "r", encoding="utf-8") as f:
                self.assertEqual(f.read(), "")


if __name__ == "__main__":
    unittest.main()
