from __future__ import annotations

from dataclasses import asdict, dataclass

HIRAGANA = "HIRAGANA"
KATAKANA = "KATAKANA"
ALLOWED_SCRIPTS = {HIRAGANA, KATAKANA}
CATEGORIES = ("gojuon", "dakuon", "handakuon", "yoon")

KATAKANA_OFFSET = 0x60


@dataclass(frozen=True)
class Kana:
    character: str
    romaji: str
    script: str
    row: str
    column: str
    category: str

    def to_dict(self) -> dict:
        return asdict(self)


# (character, romaji, row, column)
_GOJUON = [
    ("あ", "a", "a", "a"), ("い", "i", "a", "i"), ("う", "u", "a", "u"), ("え", "e", "a", "e"), ("お", "o", "a", "o"),
    ("か", "ka", "k", "a"), ("き", "ki", "k", "i"), ("く", "ku", "k", "u"), ("け", "ke", "k", "e"), ("こ", "ko", "k", "o"),
    ("さ", "sa", "s", "a"), ("し", "shi", "s", "i"), ("す", "su", "s", "u"), ("せ", "se", "s", "e"), ("そ", "so", "s", "o"),
    ("た", "ta", "t", "a"), ("ち", "chi", "t", "i"), ("つ", "tsu", "t", "u"), ("て", "te", "t", "e"), ("と", "to", "t", "o"),
    ("な", "na", "n", "a"), ("に", "ni", "n", "i"), ("ぬ", "nu", "n", "u"), ("ね", "ne", "n", "e"), ("の", "no", "n", "o"),
    ("は", "ha", "h", "a"), ("ひ", "hi", "h", "i"), ("ふ", "fu", "h", "u"), ("へ", "he", "h", "e"), ("ほ", "ho", "h", "o"),
    ("ま", "ma", "m", "a"), ("み", "mi", "m", "i"), ("む", "mu", "m", "u"), ("め", "me", "m", "e"), ("も", "mo", "m", "o"),
    ("や", "ya", "y", "a"), ("ゆ", "yu", "y", "u"), ("よ", "yo", "y", "o"),
    ("ら", "ra", "r", "a"), ("り", "ri", "r", "i"), ("る", "ru", "r", "u"), ("れ", "re", "r", "e"), ("ろ", "ro", "r", "o"),
    ("わ", "wa", "w", "a"), ("を", "wo", "w", "o"),
    ("ん", "n", "n", "special"),
]

_DAKUON = [
    ("が", "ga", "g", "a"), ("ぎ", "gi", "g", "i"), ("ぐ", "gu", "g", "u"), ("げ", "ge", "g", "e"), ("ご", "go", "g", "o"),
    ("ざ", "za", "z", "a"), ("じ", "ji", "z", "i"), ("ず", "zu", "z", "u"), ("ぜ", "ze", "z", "e"), ("ぞ", "zo", "z", "o"),
    ("だ", "da", "d", "a"), ("ぢ", "ji", "d", "i"), ("づ", "zu", "d", "u"), ("で", "de", "d", "e"), ("ど", "do", "d", "o"),
    ("ば", "ba", "b", "a"), ("び", "bi", "b", "i"), ("ぶ", "bu", "b", "u"), ("べ", "be", "b", "e"), ("ぼ", "bo", "b", "o"),
]

_HANDAKUON = [
    ("ぱ", "pa", "p", "a"), ("ぴ", "pi", "p", "i"), ("ぷ", "pu", "p", "u"), ("ぺ", "pe", "p", "e"), ("ぽ", "po", "p", "o"),
]

_YOON_BASES = [
    ("き", "ky", "k"), ("し", "sh", "s"), ("ち", "ch", "t"), ("に", "ny", "n"), ("ひ", "hy", "h"),
    ("み", "my", "m"), ("り", "ry", "r"), ("ぎ", "gy", "g"), ("じ", "j", "z"), ("び", "by", "b"), ("ぴ", "py", "p"),
]
_YOON_SMALL = [("ゃ", "a"), ("ゅ", "u"), ("ょ", "o")]


def to_katakana(text: str) -> str:
    return "".join(
        chr(ord(ch) + KATAKANA_OFFSET) if "ぁ" <= ch <= "ゖ" else ch
        for ch in text
    )


def _build_catalog() -> list[Kana]:
    hiragana: list[Kana] = []
    for category, rows in (("gojuon", _GOJUON), ("dakuon", _DAKUON), ("handakuon", _HANDAKUON)):
        for character, romaji, row, column in rows:
            hiragana.append(Kana(character, romaji, HIRAGANA, row, column, category))
    for base, prefix, row in _YOON_BASES:
        for small, vowel in _YOON_SMALL:
            hiragana.append(Kana(base + small, prefix + vowel, HIRAGANA, row, small, "yoon"))

    katakana = [
        Kana(to_katakana(k.character), k.romaji, KATAKANA, k.row, to_katakana(k.column), k.category)
        for k in hiragana
    ]
    return hiragana + katakana


KANA: list[Kana] = _build_catalog()
_BY_CHARACTER: dict[str, Kana] = {k.character: k for k in KANA}


def get_kana_by_character(character: str) -> Kana | None:
    return _BY_CHARACTER.get(str(character or "").strip())


def get_kana_by_romaji(romaji: str, script: str | None = None) -> Kana | None:
    key = str(romaji or "").strip().lower()
    for kana in list_kana(script=script):
        if kana.romaji == key:
            return kana
    return None


def get_kana_by_row(row: str) -> list[Kana]:
    key = str(row or "").strip().lower()
    return [k for k in KANA if k.row == key]


def list_kana(*, script: str | None = None, category: str | None = None, row: str | None = None) -> list[Kana]:
    items = KANA
    if script:
        normalized = str(script).strip().upper()
        if normalized not in ALLOWED_SCRIPTS:
            raise ValueError(f"unsupported script: {script}")
        items = [k for k in items if k.script == normalized]
    if category:
        normalized = str(category).strip().lower()
        if normalized not in CATEGORIES:
            raise ValueError(f"unsupported category: {category}")
        items = [k for k in items if k.category == normalized]
    if row:
        key = str(row).strip().lower()
        items = [k for k in items if k.row == key]
    return list(items)


def romaji_for(character: str) -> str | None:
    kana = get_kana_by_character(character)
    return kana.romaji if kana else None
