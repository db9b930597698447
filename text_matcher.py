#!/usr/bin/env python3
"""
Text Matcher - Decide which classifier rules apply to a document's text.

A rule matches when every one of its keywords appears in the text as a
whole word (case-sensitive). Rules without keywords never match. Several
rules may match the same text; callers decide what to do with ambiguity.
"""

import re
from functools import lru_cache

from classifier_rules import ClassifierRule


@lru_cache(maxsize=4096)
def keyword_pattern(keyword: str) -> re.Pattern:
    """Compile a whole-word pattern for a literal keyword.

    Lookarounds are used instead of \\b so keywords that start or end with
    punctuation (e.g. 'C++', '$100') still match next to spaces.
    """
    return re.compile(rf"(?<!\w){re.escape(keyword)}(?!\w)")


def rule_matches(rule: ClassifierRule, text: str) -> bool:
    """Check if all of the rule's keywords occur in the text."""
    if not rule.keywords:
        return False
    return all(keyword_pattern(word).search(text) for word in rule.keywords)


def matches(rules: list[ClassifierRule], text: str) -> list[ClassifierRule]:
    """Return every rule that matches the text, in rule order."""
    return [rule for rule in rules if rule_matches(rule, text)]
