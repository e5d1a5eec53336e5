#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import unittest

from glyphtalk_utils import BASE64_SYMBOLS
from glyphtalk.alphabet import (
    ALPHABET_SIZE,
    DEFAULT_PRESET,
    PRESETS,
    SEPARATOR_CANDIDATES,
    TRIE_END,
    AlphabetDefinition,
    AlphabetTable,
    SeparatorCollisionError,
    ValidationError,
    build_glyph_trie,
    check_separator,
    export_file_name,
    format_alphabet_text,
    get_preset,
    has_ambiguity,
    parse_alphabet_text,
    preset_keys,
    select_separator,
)


def _distinct_glyphs():
    return ["g%02d" % i for i in range(ALPHABET_SIZE)]


class AlphabetTableTests(unittest.TestCase):
    def test_identity_table(self) -> None:
        table = AlphabetTable(BASE64_SYMBOLS[i] for i in range(64))
        self.assertEqual(len(table), 64)
        self.assertEqual(table.glyph_for("S"), "S")
        self.assertEqual(table.symbol_for("/"), "/")
        self.assertEqual(table.index_of("B"), 1)
        self.assertIsNone(table.symbol_for("?"))
        self.assertFalse(table.has_ambiguity)
        self.assertFalse(table.requires_separator)
        self.assertEqual(table.max_glyph_len, 1)

    def test_wrong_size(self) -> None:
        with self.assertRaises(ValidationError):
            AlphabetTable(_distinct_glyphs()[:63])
        with self.assertRaises(ValidationError):
            AlphabetTable(_distinct_glyphs() + ["extra"])

    def test_rejects_single_string(self) -> None:
        with self.assertRaises(ValidationError):
            AlphabetTable(BASE64_SYMBOLS)

    def test_rejects_empty_and_padding_glyphs(self) -> None:
        for bad in ("", "=", 7):
            glyphs = _distinct_glyphs()
            glyphs[5] = bad  # type: ignore[call-overload]
            with self.assertRaises(ValidationError, msg=repr(bad)):
                AlphabetTable(glyphs)

    def test_duplicates_are_ambiguous_and_first_wins(self) -> None:
        glyphs = list(BASE64_SYMBOLS)
        glyphs[1] = "A"
        table = AlphabetTable(glyphs)
        self.assertTrue(table.has_duplicates)
        self.assertTrue(table.has_ambiguity)
        self.assertEqual(table.symbol_for("A"), "A")

    def test_glyph_starting_with_padding_needs_separator(self) -> None:
        glyphs = _distinct_glyphs()
        glyphs[0] = "=zz"
        table = AlphabetTable(glyphs)
        self.assertFalse(table.has_ambiguity)
        self.assertTrue(table.requires_separator)

    def test_equality_and_hash(self) -> None:
        a = AlphabetTable(_distinct_glyphs())
        b = AlphabetTable(tuple(_distinct_glyphs()))
        self.assertEqual(a, b)
        self.assertEqual(hash(a), hash(b))


class AmbiguityTests(unittest.TestCase):
    def test_containment(self) -> None:
        glyphs = _distinct_glyphs()
        glyphs[10] = "g0"
        self.assertTrue(has_ambiguity(glyphs))

    def test_distinct_same_length(self) -> None:
        self.assertFalse(has_ambiguity(_distinct_glyphs()))

    def test_duplicate(self) -> None:
        self.assertTrue(has_ambiguity(["a", "b", "a"]))

    def test_presets(self) -> None:
        self.assertFalse(has_ambiguity(PRESETS["standard"].table))
        self.assertFalse(has_ambiguity(PRESETS["dishes"].chars))
        self.assertFalse(has_ambiguity(PRESETS["poetry"].chars))
        self.assertFalse(has_ambiguity(PRESETS["hakima"].chars))
        self.assertFalse(has_ambiguity(PRESETS["emoji"].chars))
        # 猫 / 猫头鹰
        self.assertTrue(has_ambiguity(PRESETS["animals"].chars))
        # 红 / 朱红
        self.assertTrue(has_ambiguity(PRESETS["colors"].chars))


class SeparatorTests(unittest.TestCase):
    def test_first_candidate_when_free(self) -> None:
        self.assertEqual(select_separator(PRESETS["animals"].table), "|")

    def test_skips_candidates_used_in_glyphs(self) -> None:
        glyphs = _distinct_glyphs()
        glyphs[0] = "g|0"
        self.assertEqual(select_separator(glyphs), "·")

    def test_all_candidates_used(self) -> None:
        glyphs = _distinct_glyphs()
        for i, sep in enumerate(SEPARATOR_CANDIDATES):
            glyphs[i] = f"{sep}{i}"
        with self.assertRaises(SeparatorCollisionError):
            select_separator(glyphs)

    def test_check_literal_separator(self) -> None:
        glyphs = _distinct_glyphs()
        self.assertEqual(check_separator("/", glyphs), "/")
        self.assertEqual(check_separator(" | ", glyphs), " | ")
        with self.assertRaises(ValidationError):
            check_separator("", glyphs)
        with self.assertRaises(ValidationError):
            check_separator("=/", glyphs)
        with self.assertRaises(SeparatorCollisionError):
            check_separator("0", glyphs)


class TrieTests(unittest.TestCase):
    def test_terminal_marks(self) -> None:
        trie = build_glyph_trie(["ab", "a"])
        self.assertEqual(trie["a"][TRIE_END], "a")
        self.assertEqual(trie["a"]["b"][TRIE_END], "ab")

    def test_nul_character_glyph(self) -> None:
        trie = build_glyph_trie(["\0", "a"])
        self.assertEqual(trie["\0"][TRIE_END], "\0")


class AlphabetDefinitionTests(unittest.TestCase):
    def test_wrong_size(self) -> None:
        with self.assertRaises(ValidationError):
            AlphabetDefinition(name="x", description="", chars=("a", "b"))

    def test_dict_roundtrip(self) -> None:
        definition = AlphabetDefinition(name="测试", description="d", chars=tuple(_distinct_glyphs()), avatar="📁")
        data = definition.to_dict()
        self.assertEqual(data["chars"], _distinct_glyphs())
        self.assertEqual(AlphabetDefinition.from_dict(data), definition)

    def test_from_dict_rejects_string_chars(self) -> None:
        with self.assertRaises(ValidationError):
            AlphabetDefinition.from_dict({"name": "x", "chars": BASE64_SYMBOLS})

    def test_table_is_cached(self) -> None:
        definition = PRESETS["poetry"]
        self.assertIs(definition.table, definition.table)

    def test_parse_text(self) -> None:
        content = "名称: 测试\n描述: 说明\n字符: " + ",".join(_distinct_glyphs())
        definition = parse_alphabet_text(content)
        self.assertEqual(definition.name, "测试")
        self.assertEqual(definition.description, "说明")
        self.assertEqual(definition.chars, tuple(_distinct_glyphs()))
        self.assertEqual(definition.avatar, "📁")

    def test_parse_text_wrong_count(self) -> None:
        content = "名称: 测试\n描述: 说明\n字符: " + ",".join(_distinct_glyphs()[:60])
        with self.assertRaises(ValidationError):
            parse_alphabet_text(content)
        with self.assertRaises(ValidationError):
            parse_alphabet_text("only one line")

    def test_format_then_parse(self) -> None:
        definition = PRESETS["dishes"]
        parsed = parse_alphabet_text(format_alphabet_text(definition), avatar=definition.avatar)
        self.assertEqual(parsed, definition)

    def test_format_rejects_glyphs_lost_on_import(self) -> None:
        for bad in ("a,b", " x", "y ", "p\nq"):
            glyphs = _distinct_glyphs()
            glyphs[3] = bad
            definition = AlphabetDefinition(name="x", description="", chars=tuple(glyphs))
            with self.assertRaises(ValidationError, msg=repr(bad)):
                format_alphabet_text(definition)

    def test_format_keeps_inner_spaces(self) -> None:
        glyphs = _distinct_glyphs()
        glyphs[3] = "two words"
        definition = AlphabetDefinition(name="x", description="d", chars=tuple(glyphs))
        self.assertEqual(parse_alphabet_text(format_alphabet_text(definition), avatar="").chars, tuple(glyphs))

    def test_export_file_name(self) -> None:
        self.assertEqual(export_file_name(PRESETS["dishes"]), "报菜名.txt")
        self.assertEqual(export_file_name(PRESETS["standard"]), "Standard_Base64.txt")


class PresetTests(unittest.TestCase):
    def test_all_presets_are_complete(self) -> None:
        self.assertEqual(
            set(preset_keys()),
            {"dishes", "poetry", "animals", "emoji", "colors", "standard", "hakima"},
        )
        for key in preset_keys():
            chars = get_preset(key).chars
            self.assertEqual(len(chars), 64, key)
            self.assertEqual(len(set(chars)), 64, key)

    def test_default_preset(self) -> None:
        self.assertIn(DEFAULT_PRESET, PRESETS)

    def test_unknown_preset(self) -> None:
        with self.assertRaises(KeyError):
            get_preset("nope")


if __name__ == "__main__":
    unittest.main()
