"""
Kinship - Resolve Chinese relationship chains such as 爸爸的妈妈.

RELATIONSHIPS[x][y] reads "my x's y is ...", except for the "我" column,
which maps a relation onto itself. The table has known gaps (several
in-law relations have no reciprocal entries); a chain that walks into a
gap has no answer.
"""

from typing import Optional

SELF = "我"
POSSESSIVE = "的"

RELATIONSHIPS: dict[str, dict[str, str]] = {
    # Paternal
    "爸爸": {"我": "爸爸", "爸爸": "爷爷", "妈妈": "奶奶", "儿子": "兄弟", "女儿": "姐妹", "哥哥": "伯父", "弟弟": "叔叔", "姐姐": "姑姑", "妹妹": "姑姑", "爷爷": "曾祖父", "奶奶": "曾祖母", "伯父": "堂伯", "叔叔": "堂叔", "姑姑": "姑表姑", "舅舅": "姑表舅", "姨妈": "姑表姨"},
    "妈妈": {"我": "妈妈", "爸爸": "外公", "妈妈": "外婆", "儿子": "兄弟", "女儿": "姐妹", "哥哥": "舅舅", "弟弟": "舅舅", "姐姐": "姨妈", "妹妹": "姨妈", "外公": "外曾祖父", "外婆": "外曾祖母", "伯父": "姨表伯", "叔叔": "姨表叔", "姑姑": "姨表姑", "舅舅": "姨表舅", "姨妈": "姨表姨"},

    # Children
    "儿子": {"我": "儿子", "爸爸": "我", "妈妈": "妻子", "儿子": "孙子", "女儿": "孙女", "哥哥": "侄子", "弟弟": "侄子", "姐姐": "外甥", "妹妹": "外甥", "妻子": "儿媳", "孙子": "曾孙"},
    "女儿": {"我": "女儿", "爸爸": "我", "妈妈": "妻子", "儿子": "外孙", "女儿": "外孙女", "哥哥": "侄女", "弟弟": "侄女", "姐姐": "外甥女", "妹妹": "外甥女", "丈夫": "女婿", "外孙": "外曾孙"},

    # Siblings
    "哥哥": {"我": "哥哥", "爸爸": "爸爸", "妈妈": "妈妈", "儿子": "侄子", "女儿": "侄女", "哥哥": "堂哥", "弟弟": "堂弟", "姐姐": "堂姐", "妹妹": "堂妹", "妻子": "嫂子"},
    "弟弟": {"我": "弟弟", "爸爸": "爸爸", "妈妈": "妈妈", "儿子": "侄子", "女儿": "侄女", "哥哥": "堂哥", "弟弟": "堂弟", "姐姐": "堂姐", "妹妹": "堂妹", "妻子": "弟媳"},
    "姐姐": {"我": "姐姐", "爸爸": "爸爸", "妈妈": "妈妈", "儿子": "外甥", "女儿": "外甥女", "哥哥": "表哥", "弟弟": "表弟", "姐姐": "表姐", "妹妹": "表妹", "丈夫": "姐夫"},
    "妹妹": {"我": "妹妹", "爸爸": "爸爸", "妈妈": "妈妈", "儿子": "外甥", "女儿": "外甥女", "哥哥": "表哥", "弟弟": "表弟", "姐姐": "表姐", "妹妹": "表妹", "丈夫": "妹夫"},

    # Grandparents
    "爷爷": {"我": "爷爷", "爸爸": "曾祖父", "妈妈": "曾祖母", "儿子": "父亲", "女儿": "姑姑", "哥哥": "伯祖父", "弟弟": "叔祖父", "姐姐": "姑祖母", "妹妹": "姑祖母"},
    "奶奶": {"我": "奶奶", "爸爸": "曾祖父", "妈妈": "曾祖母", "儿子": "父亲", "女儿": "姑姑", "哥哥": "舅祖父", "弟弟": "舅祖父", "姐姐": "姨祖母", "妹妹": "姨祖母"},
    "外公": {"我": "外公", "爸爸": "外曾祖父", "妈妈": "外曾祖母", "儿子": "舅舅", "女儿": "母亲", "哥哥": "伯外祖父", "弟弟": "叔外祖父", "姐姐": "姑外祖母", "妹妹": "姑外祖母"},
    "外婆": {"我": "外婆", "爸爸": "外曾祖父", "妈妈": "外曾祖母", "儿子": "舅舅", "女儿": "母亲", "哥哥": "舅外祖父", "弟弟": "舅外祖父", "姐姐": "姨外祖母", "妹妹": "姨外祖母"},

    # Great-grandparents
    "曾祖父": {"我": "曾祖父", "儿子": "爷爷", "女儿": "姑奶奶"},
    "曾祖母": {"我": "曾祖母", "儿子": "爷爷", "女儿": "姑奶奶"},
    "外曾祖父": {"我": "外曾祖父", "儿子": "外公", "女儿": "姑外婆"},
    "外曾祖母": {"我": "外曾祖母", "儿子": "外公", "女儿": "姑外婆"},

    # Uncles and aunts
    "伯父": {"我": "伯父", "爸爸": "爷爷", "妈妈": "奶奶", "儿子": "堂兄弟", "女儿": "堂姐妹", "妻子": "伯母"},
    "叔叔": {"我": "叔叔", "爸爸": "爷爷", "妈妈": "奶奶", "儿子": "堂兄弟", "女儿": "堂姐妹", "妻子": "婶婶"},
    "姑姑": {"我": "姑姑", "爸爸": "爷爷", "妈妈": "奶奶", "儿子": "表兄弟", "女儿": "表姐妹", "丈夫": "姑父"},
    "舅舅": {"我": "舅舅", "爸爸": "外公", "妈妈": "外婆", "儿子": "表兄弟", "女儿": "表姐妹", "妻子": "舅妈"},
    "姨妈": {"我": "姨妈", "爸爸": "外公", "妈妈": "外婆", "儿子": "表兄弟", "女儿": "表姐妹", "丈夫": "姨父"},

    # Spouses
    "丈夫": {"我": "丈夫", "爸爸": "公公", "妈妈": "婆婆", "哥哥": "大伯子", "弟弟": "小叔子", "姐姐": "大姑子", "妹妹": "小姑子"},
    "妻子": {"我": "妻子", "爸爸": "岳父", "妈妈": "岳母", "哥哥": "大舅子", "弟弟": "小舅子", "姐姐": "大姨子", "妹妹": "小姨子"},

    # Cousins
    "堂兄弟": {"我": "堂兄弟", "爸爸": "伯父或叔叔", "妈妈": "伯母或婶婶"},
    "堂姐妹": {"我": "堂姐妹", "爸爸": "伯父或叔叔", "妈妈": "伯母或婶婶"},
    "表兄弟": {"我": "表兄弟", "爸爸": "姑父或舅舅或姨父", "妈妈": "姑姑或舅妈或姨妈"},
    "表姐妹": {"我": "表姐妹", "爸爸": "姑父或舅舅或姨父", "妈妈": "姑姑或舅妈或姨妈"},
}

ALIASES: dict[str, str] = {
    "父亲": "爸爸",
    "母亲": "妈妈",
    "父": "爸爸",
    "母": "妈妈",
    "老爸": "爸爸",
    "老妈": "妈妈",
    "爸": "爸爸",
    "妈": "妈妈",
    "大哥": "哥哥",
    "二哥": "哥哥",
    "大姐": "姐姐",
    "二姐": "姐姐",
    "儿": "儿子",
    "子": "儿子",
    "女": "女儿",
}

TERMS = ("爸爸", "妈妈", "父亲", "母亲", "儿子", "女儿", "哥哥", "弟弟",
         "姐姐", "妹妹", "爷爷", "奶奶", "外公", "外婆")
CONNECTORS = ("的", "是", "叫什么", "称为", "称作")
QUESTION_WORDS = ("叫什么", "是什么", "叫", "是")

_GRAPH_TERMS = sorted(RELATIONSHIPS, key=len, reverse=True)
_ALIAS_TERMS = sorted(ALIASES, key=len, reverse=True)


def is_kinship_query(text: str) -> bool:
    return any(t in text for t in TERMS) and any(c in text for c in CONNECTORS)


def normalize(segment: str) -> str:
    """
    Map one chain segment onto a relation term.

    Exact matches win over containment and longer terms over shorter
    ones, so 妻子 stays 妻子 instead of collapsing to 儿子 via 子.
    A bare question ("叫什么") normalizes to the empty string.
    """
    term = segment.strip()
    if term in ALIASES:
        return ALIASES[term]
    if term in RELATIONSHIPS or term == SELF:
        return term
    for key in _GRAPH_TERMS:
        if key in term:
            return key
    for alias in _ALIAS_TERMS:
        if alias in term:
            return ALIASES[alias]
    if any(q in term for q in QUESTION_WORDS):
        return ""
    return term


def resolve(chain: list[str], target: str) -> Optional[str]:
    """Walk chain right to left from 我, then apply target."""
    current = SELF
    for relation in reversed(chain):
        step = RELATIONSHIPS.get(relation, {}).get(current)
        if step is None:
            return None
        current = step

    if current == SELF:
        return target
    return RELATIONSHIPS.get(current, {}).get(target)


def evaluate(text: str) -> Optional[tuple[str, str]]:
    """
    Evaluate a possessive chain like 妈妈的爸爸.

    Returns:
        (normalized chain, relation) or None when the chain is not in
        the table
    """
    parts = text.split(POSSESSIVE)
    if len(parts) < 2:
        return None

    segments = [normalize(p) for p in parts[:-1]]
    segments = [s for s in segments if s]
    # Leading self references stay in the formula but not in the walk
    chain = list(segments)
    while chain and chain[0] == SELF:
        chain.pop(0)

    target = normalize(parts[-1])
    if not target or target == SELF:
        return None

    relation = resolve(chain, target)
    if relation is None:
        return None
    return POSSESSIVE.join([*segments, target]), relation
