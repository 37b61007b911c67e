from types import MappingProxyType

from .exceptions import UnknownKeyword

# 작품 키워드 사전 (키워드 -> 키워드 ID)
DEFAULT_KEYWORDS = MappingProxyType({
    '구상': 1,
    '추상': 2,
    '인물': 3,
    '풍경': 4,
    '정물': 5,
    '동물': 6,
    '모던한': 7,
    '따뜻한': 8,
    '차가운': 9,
    '화려한': 10,
    '차분한': 11,
    '몽환적인': 12,
    '유쾌한': 13,
    '강렬한': 14,
    '미니멀한': 15,
})


def lookup_keyword_id(keyword_map, keyword):
    try:
        return keyword_map[keyword]
    except KeyError:
        raise UnknownKeyword(f"'{keyword}' 키워드를 찾을 수 없습니다.")


def keyword_names(keyword_map, keyword_ids):
    """키워드 ID -> 키워드 역조회 (사전에 없는 ID 는 제외)"""
    reverse = {keyword_id: name for name, keyword_id in keyword_map.items()}
    return [reverse[keyword_id] for keyword_id in keyword_ids if keyword_id in reverse]
