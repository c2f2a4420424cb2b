from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any

from ..models.config_models import ClassificationConfig
from ..models.group import GroupType, RiskLevel
from .normalizer import clean_text

"""Classifier: group type, risk level and category from name + sheet + size.

Rules are data, not code: each dimension is a RuleSet (ordered Rules, first
match wins, default otherwise). Keyword tables come from the source workbooks
(English and Kannada vocabulary) and can be tuned through the
`classification` section of the config.

classify() is a pure function of its inputs and never fails.
"""

__all__ = [
    "Rule",
    "RuleSet",
    "ClassificationRules",
    "Classification",
    "DEFAULT_RULES",
    "TYPE_CATEGORY_LABELS",
    "build_rules",
    "classify",
    "is_generic_sheet",
]


@lru_cache(maxsize=512)
def _word_pattern(keyword: str) -> re.Pattern[str]:
    return re.compile(rf"(?<![a-z0-9]){re.escape(keyword)}(?![a-z0-9])")


def _keyword_in(keyword: str, text: str) -> bool:
    # ASCII は単語単位 ("dal" が "medal" に当たらないように)、カンナダ語は部分一致
    if keyword.isascii():
        return _word_pattern(keyword).search(text) is not None
    return keyword in text


def _key(text: str | None) -> str:
    return clean_text(text).casefold() if text else ""


def _keys(words: Iterable[str]) -> tuple[str, ...]:
    return tuple(k for k in (_key(w) for w in words) if k)


@dataclass(frozen=True)
class Rule:
    """One classification signal set.

    Matches when any of: a name keyword occurs in the name, a sheet keyword
    occurs in the sheet label, or the member count exceeds above_members.
    """
    value: Any
    name_keywords: tuple[str, ...] = ()
    sheet_keywords: tuple[str, ...] = ()
    above_members: int | None = None

    def matches(self, name_key: str, sheet_key: str, member_count: int) -> bool:
        if any(_keyword_in(kw, name_key) for kw in self.name_keywords):
            return True
        if any(kw in sheet_key for kw in self.sheet_keywords):
            return True
        return self.above_members is not None and member_count > self.above_members


@dataclass(frozen=True)
class RuleSet:
    rules: tuple[Rule, ...]
    default: Any = None

    def resolve(self, name_key: str, sheet_key: str, member_count: int = 0) -> Any:
        for rule in self.rules:
            if rule.matches(name_key, sheet_key, member_count):
                return rule.value
        return self.default


@dataclass(frozen=True)
class ClassificationRules:
    type_rules: RuleSet
    risk_rules: RuleSet
    category_rules: RuleSet  # name keyword categories, default None
    sheet_categories: Mapping[str, str] = field(default_factory=dict)  # casefolded sheet -> label
    generic_sheets: frozenset[str] = frozenset()  # casefolded


@dataclass(frozen=True)
class Classification:
    group_type: GroupType
    risk_level: RiskLevel
    category: str

    @property
    def monitoring_enabled(self) -> bool:
        return self.risk_level is RiskLevel.HIGH


# --- keyword tables -------------------------------------------------------

_TYPE_SHEET_KEYWORDS: tuple[tuple[GroupType, tuple[str, ...]], ...] = (
    (GroupType.RELIGIOUS, ("hindu", "muslim", "christian")),
    (GroupType.POLITICAL, ("political",)),
    (GroupType.SOCIAL, ("student", "woman", "women", "human rights")),
    (GroupType.PROFESSIONAL, ("farmer", "trade union")),
    (GroupType.CULTURAL, ("kannada", "kannadda")),
)

_TYPE_NAME_KEYWORDS: tuple[tuple[GroupType, tuple[str, ...]], ...] = (
    (GroupType.RELIGIOUS, (
        "hindu", "hindutva", "ಹಿಂದೂ", "muslim", "christian",
        "bajrang", "ಬಜರಂಗ", "ಭಜರಂಗ", "ಪರಿಷತ್", "dharma", "ಧರ್ಮ",
    )),
    (GroupType.POLITICAL, ("bjp", "ಬಿಜೆಪಿ", "modi", "ಮೋದಿ", "congress", "political", "ರಾಜಕೀಯ")),
    (GroupType.SOCIAL, ("youth", "ಯುವ", "yuva", "student", "ಅಭಿಮಾನಿ", "community", "ಸಮಾಜ")),
    (GroupType.PROFESSIONAL, ("farmer", "farmers", "union", "ರೈತ")),
    (GroupType.CULTURAL, ("culture", "cultural", "ಸಾಂಸ್ಕೃತಿಕ")),
)

_HIGH_RISK_NAME_KEYWORDS: tuple[str, ...] = (
    "militant", "extremist", "extreme", "sena", "dal", "kattar", "bajrang",
    "ಕಠೋರ", "ಸೇನೆ", "ಸೇನಾ", "ದಳ", "ಕಟ್ಟರ", "ಕ್ರಾಂತಿಕಾರಿ", "ಹುಲಿ", "ಘರ್ಜನೆ",
)

_CATEGORY_NAME_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Hindu Organizations", ("hindu", "ಹಿಂದೂ")),
    ("Political Groups", ("bjp", "ರಾಷ್ಟ್ರೀಯ")),
    ("Youth Organizations", ("youth", "ಯುವ")),
    ("Militant Groups", ("sena", "ಸೇನಾ")),
)

TYPE_CATEGORY_LABELS: dict[GroupType, str] = {
    GroupType.RELIGIOUS: "Religious Organizations",
    GroupType.POLITICAL: "Political Groups",
    GroupType.SOCIAL: "Social Groups",
    GroupType.PROFESSIONAL: "Professional Associations",
    GroupType.CULTURAL: "Cultural Organizations",
    GroupType.OTHER: "Other Groups",
}

# Sheet1 / Sheet 2 / Mixed / Mixed 2 / Data
_GENERIC_SHEET_RE = re.compile(r"sheet\s*\d*|mixed(\s*\d+)?|data")


def build_rules(
    config: ClassificationConfig | None = None,
    extra_categories: Mapping[str, str] | None = None,
) -> ClassificationRules:
    """Build the rule bundle from (optional) config.

    `extra_categories` maps sheet labels to category labels (per-source
    `category:` entries); config `categories` take precedence over them.
    """
    config = config or ClassificationConfig()

    type_rules = [Rule(t, sheet_keywords=kws) for t, kws in _TYPE_SHEET_KEYWORDS]
    type_rules += [Rule(t, name_keywords=_keys(kws)) for t, kws in _TYPE_NAME_KEYWORDS]

    risk_rules = (
        Rule(RiskLevel.HIGH, name_keywords=_keys(_HIGH_RISK_NAME_KEYWORDS)),
        Rule(RiskLevel.HIGH, sheet_keywords=_keys(config.high_scrutiny_sheets)),
        Rule(
            RiskLevel.MEDIUM,
            sheet_keywords=_keys(config.affiliation_sheets),
            above_members=config.member_threshold,
        ),
    )

    category_rules = tuple(Rule(label, name_keywords=_keys(kws)) for label, kws in _CATEGORY_NAME_KEYWORDS)

    sheet_categories = {_key(k): v for k, v in (extra_categories or {}).items() if _key(k) and v}
    sheet_categories.update({_key(k): v for k, v in config.categories.items() if _key(k) and v})

    return ClassificationRules(
        type_rules=RuleSet(tuple(type_rules), GroupType.OTHER),
        risk_rules=RuleSet(risk_rules, RiskLevel.LOW),
        category_rules=RuleSet(category_rules, None),
        sheet_categories=sheet_categories,
        generic_sheets=frozenset(_keys(config.generic_sheets)),
    )


DEFAULT_RULES = build_rules()


def is_generic_sheet(sheet: str | None, rules: ClassificationRules = DEFAULT_RULES) -> bool:
    key = _key(sheet)
    if not key:
        return True
    return key in rules.generic_sheets or _GENERIC_SHEET_RE.fullmatch(key) is not None


def _category(
    name_key: str,
    sheet: str,
    group_type: GroupType,
    rules: ClassificationRules,
) -> str:
    sheet_key = _key(sheet)
    if sheet_key in rules.sheet_categories:
        return rules.sheet_categories[sheet_key]
    if not is_generic_sheet(sheet, rules):
        return clean_text(sheet)
    by_name = rules.category_rules.resolve(name_key, sheet_key)
    if by_name:
        return by_name
    return TYPE_CATEGORY_LABELS[group_type]


def classify(
    name: str,
    source_sheet: str,
    member_count: int = 0,
    rules: ClassificationRules = DEFAULT_RULES,
) -> Classification:
    """Classify a group.

    Type: sheet keywords, then name keywords, then OTHER.
    Risk: HIGH keyword in name > high-scrutiny sheet > (large group or
    affiliation-flagged sheet -> MEDIUM) > LOW.
    Category: configured sheet label > non-generic sheet label > name
    keyword category > type-derived label.
    """
    name_key = _key(name)
    sheet_key = _key(source_sheet)
    group_type = rules.type_rules.resolve(name_key, sheet_key, member_count)
    risk_level = rules.risk_rules.resolve(name_key, sheet_key, member_count)
    category = _category(name_key, source_sheet, group_type, rules)
    return Classification(group_type=group_type, risk_level=risk_level, category=category)
