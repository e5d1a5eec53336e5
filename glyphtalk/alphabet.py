#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from glyphtalk_utils import (
    BASE64_PAD,
    BASE64_SYMBOLS,
    SYMBOL_TO_INDEX,
    alphabet_file_name,
    format_alphabet_lines,
    parse_alphabet_lines,
)

ALPHABET_SIZE = len(BASE64_SYMBOLS)
SEPARATOR_CANDIDATES = ("|", "·", "•", "◦", "▪", "▫", "◆", "◇", "★", "☆")
SEPARATOR_AUTO = "auto"
TRIE_END = None


class ValidationError(ValueError):
    pass


class SeparatorCollisionError(ValidationError):
    pass


def has_ambiguity(glyphs: Union["AlphabetTable", Sequence[str]]) -> bool:
    """True when bare glyph concatenation may not split back uniquely.

    Either a glyph repeats, or one non-empty glyph occurs inside another.
    """
    if isinstance(glyphs, AlphabetTable):
        return glyphs.has_ambiguity
    items = list(glyphs)
    if len(set(items)) < len(items):
        return True
    for i, a in enumerate(items):
        if not a:
            continue
        for j, b in enumerate(items):
            if i == j or not b:
                continue
            if a in b or b in a:
                return True
    return False


def _chars_used(glyphs: Iterable[str]) -> set:
    used = set()
    for g in glyphs:
        used.update(g)
    return used


def check_separator(separator: str, glyphs: Sequence[str]) -> str:
    """Validate a literal separator against an alphabet.

    The first character must occur in no glyph: left-to-right splitting then
    can only ever hit real separators.
    """
    if not isinstance(separator, str) or not separator:
        raise ValidationError("separator must be a non-empty string")
    if separator.startswith(BASE64_PAD):
        raise ValidationError("separator must not start with the padding marker '='")
    if separator[0] in _chars_used(glyphs):
        raise SeparatorCollisionError(f"separator {separator!r} collides with a glyph")
    return separator


def select_separator(glyphs: Union["AlphabetTable", Sequence[str]]) -> str:
    items = glyphs.glyphs if isinstance(glyphs, AlphabetTable) else tuple(glyphs)
    used = _chars_used(items)
    for sep in SEPARATOR_CANDIDATES:
        if sep not in used:
            return sep
    raise SeparatorCollisionError(
        "every separator candidate (" + " ".join(SEPARATOR_CANDIDATES) + ") is used inside a glyph"
    )


def build_glyph_trie(glyphs: Sequence[str]) -> dict:
    root: dict = {}
    for g in glyphs:
        node = root
        for ch in g:
            nxt = node.get(ch)
            if not isinstance(nxt, dict):
                nxt = {}
                node[ch] = nxt
            node = nxt
        node.setdefault(TRIE_END, g)
    return root


class AlphabetTable:
    """Immutable 64-glyph substitution table.

    Glyph i stands for Base64 symbol BASE64_SYMBOLS[i]. Duplicate and
    overlapping glyphs are accepted; the ambiguity verdict, the reverse lookup
    and the split trie are computed once here.
    """

    __slots__ = (
        "_glyphs",
        "_index",
        "_trie",
        "_has_ambiguity",
        "_requires_separator",
        "_has_duplicates",
        "_max_glyph_len",
    )

    def __init__(self, glyphs: Iterable[str]) -> None:
        if isinstance(glyphs, str):
            raise ValidationError("glyphs must be a sequence of strings, not a single string")
        items = tuple(glyphs)
        if len(items) != ALPHABET_SIZE:
            raise ValidationError(f"alphabet must contain exactly {ALPHABET_SIZE} glyphs, got {len(items)}")
        for pos, g in enumerate(items):
            if not isinstance(g, str):
                raise ValidationError(f"glyph {pos} is not a string: {g!r}")
            if not g:
                raise ValidationError(f"glyph {pos} is empty")
            if g == BASE64_PAD:
                raise ValidationError(f"glyph {pos} equals the padding marker '='")
        index: Dict[str, int] = {}
        for pos, g in enumerate(items):
            index.setdefault(g, pos)
        self._glyphs: Tuple[str, ...] = items
        self._index = index
        self._trie = build_glyph_trie(items)
        self._has_duplicates = len(index) < len(items)
        self._has_ambiguity = has_ambiguity(items)
        self._requires_separator = self._has_ambiguity or any(g.startswith(BASE64_PAD) for g in items)
        self._max_glyph_len = max(len(g) for g in items)

    @classmethod
    def from_definition(cls, definition: "AlphabetDefinition") -> "AlphabetTable":
        return cls(definition.chars)

    @property
    def glyphs(self) -> Tuple[str, ...]:
        return self._glyphs

    @property
    def trie(self) -> dict:
        return self._trie

    @property
    def has_ambiguity(self) -> bool:
        return self._has_ambiguity

    @property
    def requires_separator(self) -> bool:
        return self._requires_separator

    @property
    def has_duplicates(self) -> bool:
        return self._has_duplicates

    @property
    def max_glyph_len(self) -> int:
        return self._max_glyph_len

    def glyph_for(self, symbol: str) -> str:
        return self._glyphs[SYMBOL_TO_INDEX[symbol]]

    def index_of(self, glyph: str) -> Optional[int]:
        return self._index.get(glyph)

    def symbol_for(self, glyph: str) -> Optional[str]:
        pos = self._index.get(glyph)
        if pos is None:
            return None
        return BASE64_SYMBOLS[pos]

    def __len__(self) -> int:
        return len(self._glyphs)

    def __getitem__(self, pos: int) -> str:
        return self._glyphs[pos]

    def __iter__(self):
        return iter(self._glyphs)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AlphabetTable):
            return NotImplemented
        return self._glyphs == other._glyphs

    def __hash__(self) -> int:
        return hash(self._glyphs)

    def __repr__(self) -> str:
        head = ",".join(self._glyphs[:4])
        return f"AlphabetTable({head},... ambiguous={self._has_ambiguity})"


@dataclass(frozen=True)
class AlphabetDefinition:
    name: str
    description: str
    chars: Tuple[str, ...]
    avatar: str = ""
    _table: Optional[AlphabetTable] = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        chars = tuple(self.chars)
        if len(chars) != ALPHABET_SIZE:
            raise ValidationError(
                f"alphabet {self.name!r} must contain exactly {ALPHABET_SIZE} glyphs, got {len(chars)}"
            )
        object.__setattr__(self, "chars", chars)

    @property
    def table(self) -> AlphabetTable:
        if self._table is None:
            object.__setattr__(self, "_table", AlphabetTable(self.chars))
        return self._table  # type: ignore[return-value]

    def to_dict(self) -> Dict[str, object]:
        out: Dict[str, object] = {
            "name": self.name,
            "description": self.description,
            "chars": list(self.chars),
        }
        if self.avatar:
            out["avatar"] = self.avatar
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "AlphabetDefinition":
        if not isinstance(data, dict):
            raise ValidationError("alphabet definition must be a mapping")
        chars = data.get("chars")
        if isinstance(chars, str) or not isinstance(chars, (list, tuple)):
            raise ValidationError("alphabet definition 'chars' must be a list")
        return cls(
            name=str(data.get("name") or ""),
            description=str(data.get("description") or ""),
            chars=tuple(chars),
            avatar=str(data.get("avatar") or ""),
        )


def parse_alphabet_text(content: str, avatar: str = "📁") -> AlphabetDefinition:
    try:
        name, description, glyphs = parse_alphabet_lines(content)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc
    if len(glyphs) != ALPHABET_SIZE:
        raise ValidationError(f"alphabet file must list exactly {ALPHABET_SIZE} glyphs, got {len(glyphs)}")
    return AlphabetDefinition(name=name, description=description, chars=tuple(glyphs), avatar=avatar)


def format_alphabet_text(definition: AlphabetDefinition) -> str:
    # Glyphs are written comma-joined on one line and stripped on import.
    for pos, g in enumerate(definition.chars):
        if "," in g or "\n" in g or "\r" in g or g != g.strip():
            raise ValidationError(f"glyph {pos} ({g!r}) cannot be written to an alphabet file")
    return format_alphabet_lines(definition.name, definition.description, definition.chars)


def export_file_name(definition: AlphabetDefinition) -> str:
    return alphabet_file_name(definition.name)


PRESETS: Dict[str, AlphabetDefinition] = {
    "dishes": AlphabetDefinition(
        name="报菜名",
        description="Dish names from the crosstalk piece 'Reciting the Menu'",
        avatar="🍽️",
        chars=(
            "蒸羊羔", "蒸熊掌", "蒸鹿尾儿", "烧花鸭", "烧雏鸡", "烧子鹅", "卤猪", "卤鸭",
            "酱鸡", "腊肉", "松花小肚儿", "晾肉", "香肠儿", "什锦苏盘儿", "熏鸡白肚儿", "清蒸八宝猪",
            "江米酿鸭子", "罐儿野鸡", "罐儿鹌鹑", "卤什件儿", "卤子鹅", "山鸡", "兔脯", "菜蟒",
            "银鱼", "清蒸哈什蚂", "烩鸭丝", "烩鸭腰", "烩鸭条", "清拌鸭丝", "黄心管儿", "焖白鳝",
            "焖黄鳝", "豆豉鲇鱼", "锅烧鲤鱼", "锅烧鲇鱼", "清蒸甲鱼", "抓炒鲤鱼", "抓炒对虾", "软炸里脊",
            "软炸鸡", "什锦套肠儿", "卤煮寒鸦儿", "麻酥油卷儿", "熘鲜蘑", "熘鱼脯", "熘鱼肚", "熘鱼片儿",
            "醋熘肉片儿", "烩三鲜", "烩白蘑", "烩鸽子蛋", "炒银丝", "烩鳗鱼", "炒白虾", "炝青蛤",
            "炒面鱼", "炒竹笋", "芙蓉燕菜", "炒虾仁儿", "烩虾仁儿", "烩腰花儿", "烩海参", "炒蹄筋儿",
        ),
    ),
    "poetry": AlphabetDefinition(
        name="古诗词",
        description="Single characters from classical Chinese poetry",
        avatar="📜",
        chars=tuple("春花秋月夏雨冬雪山水风云日星夜晨江河湖海林树草叶鸟燕鹤凤龙虎马鹿梅兰竹菊荷桃柳松红绿青白黄紫金银琴棋书画诗词歌赋酒茶香墨笔纸砚印"),
    ),
    "animals": AlphabetDefinition(
        name="动物世界",
        description="Animal names (some overlap, so a separator is used)",
        avatar="🐾",
        chars=(
            "猫", "狗", "兔", "鸟", "鱼", "马", "牛", "羊", "猪", "鸡", "鸭", "鹅", "虎", "狮", "熊", "象",
            "猴", "鹿", "狼", "狐", "鼠", "蛇", "龟", "蛙", "蝶", "蜂", "蚁", "蜘蛛", "螃蟹", "虾", "章鱼", "鲸",
            "鹰", "鸽", "燕", "鹤", "孔雀", "企鹅", "猫头鹰", "蝙蝠", "松鼠", "刺猬", "袋鼠", "考拉", "熊猫", "长颈鹿", "斑马", "河马",
            "犀牛", "骆驼", "驴", "骡", "鳄鱼", "蜥蜴", "变色龙", "海豚", "海豹", "海狮", "水母", "海星", "珊瑚", "贝壳", "蜗牛", "蚯蚓",
        ),
    ),
    "emoji": AlphabetDefinition(
        name="Emoji",
        description="Common face emoji",
        avatar="😊",
        chars=(
            "😀", "😃", "😄", "😁", "😆", "😅", "😂", "🤣", "😊", "😇", "🙂", "🙃", "😉", "😌", "😍", "🥰",
            "😘", "😗", "😙", "😚", "😋", "😛", "😝", "😜", "🤪", "🤨", "🧐", "🤓", "😎", "🤩", "🥳", "😏",
            "😒", "😞", "😔", "😟", "😕", "🙁", "☹️", "😣", "😖", "😫", "😩", "🥺", "😢", "😭", "😤", "😠",
            "😡", "🤬", "🤯", "😳", "🥵", "🥶", "😱", "😨", "😰", "😥", "😓", "🤗", "🤔", "🤭", "🤫", "🤥",
        ),
    ),
    "colors": AlphabetDefinition(
        name="颜色世界",
        description="Colour names (some overlap, so a separator is used)",
        avatar="🎨",
        chars=(
            "红", "橙", "黄", "绿", "青", "蓝", "紫", "粉", "白", "黑", "灰", "棕", "金", "银", "铜", "铁",
            "朱红", "深红", "鲜红", "玫红", "桃红", "樱红", "胭脂", "绯红", "橘红", "橙黄", "柠檬", "鹅黄", "嫩黄", "土黄", "金黄", "杏黄",
            "翠绿", "墨绿", "深绿", "浅绿", "嫩绿", "草绿", "森绿", "碧绿", "青绿", "蓝绿", "天蓝", "海蓝", "深蓝", "浅蓝", "宝蓝", "靛蓝",
            "紫红", "深紫", "浅紫", "淡紫", "紫罗兰", "薰衣草", "雪白", "乳白", "米白", "象牙白", "珍珠白", "银白", "炭黑", "墨黑", "漆黑", "乌黑",
        ),
    ),
    "standard": AlphabetDefinition(
        name="Standard Base64",
        description="The RFC 4648 Base64 alphabet (identity substitution)",
        avatar="💻",
        chars=tuple(BASE64_SYMBOLS),
    ),
    "hakima": AlphabetDefinition(
        name="哈基码",
        description="The 'hakimi' meme character set",
        avatar="🤖",
        chars=tuple("哈基米南北绿豆阿西噶压库那鲁曼波欧马自立悠嗒步诺斯哇嗷冰踩背叮咚鸡大狗叫袋鼠兴奋剂出示健康码楼上下来带一段小白手套胖宝牛魔呵嘿喔"),
    ),
}

DEFAULT_PRESET = "dishes"


def get_preset(key: str) -> AlphabetDefinition:
    try:
        return PRESETS[key]
    except KeyError:
        raise KeyError(f"unknown alphabet preset: {key!r}") from None


def preset_keys() -> List[str]:
    return list(PRESETS.keys())
