"""
Text Formatter

Canonicalizes free-text store fields for comparison and display.

Key functions:
1. clean_name: Trim and collapse whitespace (display form)
2. normalize_name: Comparison key (NFKC, whitespace, casefold)
3. compare_names / name_sort_key: Deterministic total order on names
4. format_description: Idempotent whitespace/punctuation cleanup
5. normalize_tags: Lowercase, trimmed, de-duplicated tag lists

Example:
    >>> normalize_name("  Acme   Goods ")
    'acme goods'
    >>> format_description("great  coffee , fair prices")
    'Great coffee, fair prices'
"""

import re
import unicodedata
from collections import defaultdict
from typing import Dict, Iterable, List, Tuple, Union


# === Patterns ===

# Markup tags: "<b>", "</p>", "<br/>". A '<' followed by a space is text.
TAG_PATTERN = re.compile(r'</?[a-zA-Z][^<>]*>')

# Horizontal whitespace (any whitespace except newline)
INLINE_SPACE = re.compile(r'[^\S\n]+')

SPACE_BEFORE_PUNCT = re.compile(r' +([,.;:!?])')
REPEATED_SEPARATOR = re.compile(r'([,;:])\1+')
BLANK_LINES = re.compile(r'\n{3,}')


def clean_name(name: str) -> str:
    """
    Trim and collapse internal whitespace.

    Example:
        >>> clean_name("  Blue   Bottle\\tCoffee ")
        'Blue Bottle Coffee'
    """
    if not name:
        return ""
    return ' '.join(name.split())


def normalize_name(name: str) -> str:
    """
    Create the comparison key for a store name.

    Used for sorting and duplicate detection. Case-insensitive and
    independent of surrounding or repeated whitespace.

    Example:
        >>> normalize_name("ACME  goods")
        'acme goods'
    """
    if not name:
        return ""
    return clean_name(unicodedata.normalize('NFKC', name)).casefold()


def name_sort_key(name: str) -> Tuple[str, str]:
    """Sort key consistent with compare_names()."""
    return (normalize_name(name), name or "")


def compare_names(a: str, b: str) -> int:
    """
    Total order on store names.

    Names are ordered by normalize_name(); names with equal keys are
    ordered by ordinal comparison of the raw strings so that "Acme" and
    "acme" always land in the same relative order.

    Returns:
        -1, 0 or 1
    """
    key_a = name_sort_key(a)
    key_b = name_sort_key(b)
    if key_a < key_b:
        return -1
    if key_a > key_b:
        return 1
    return 0


def _strip_tags(text: str) -> str:
    # Removing one tag can expose another ("<<b>i>"), so run to a fixed point
    while True:
        stripped = TAG_PATTERN.sub(' ', text)
        if stripped == text:
            return text
        text = stripped


def format_description(text: str) -> str:
    """
    Normalize a description before it is persisted.

    Applied to hand-typed and enrichment-sourced descriptions alike.
    Never truncates. Idempotent: format_description(format_description(x))
    == format_description(x).

    Steps:
    - NFKC unicode normalization
    - Remove markup tags
    - Unify line endings, collapse inline whitespace, trim each line
    - At most one empty line between paragraphs
    - No whitespace before , . ; : ! ?
    - Repeated , ; : collapsed
    - First character capitalized

    Example:
        >>> format_description("<p>hand  roasted beans ,, small batches</p>")
        'Hand roasted beans, small batches'
    """
    if not text:
        return ""

    formatted = unicodedata.normalize('NFKC', text)
    formatted = _strip_tags(formatted)
    formatted = formatted.replace('\r\n', '\n').replace('\r', '\n')

    lines = [INLINE_SPACE.sub(' ', line).strip() for line in formatted.split('\n')]
    formatted = '\n'.join(lines)
    formatted = BLANK_LINES.sub('\n\n', formatted)

    formatted = SPACE_BEFORE_PUNCT.sub(r'\1', formatted)
    formatted = REPEATED_SEPARATOR.sub(r'\1', formatted)
    formatted = formatted.strip()

    if formatted and formatted[0].islower():
        # Some uppercase mappings are decomposed ("ΐ" -> "Ϊ́" as three code points)
        formatted = unicodedata.normalize('NFKC', formatted[0].upper() + formatted[1:])

    return formatted


# === Tags ===

def normalize_tag(tag: str) -> str:
    """Lowercase, trim and collapse whitespace."""
    if not tag:
        return ""
    return ' '.join(str(tag).split()).lower()


def normalize_tags(tags: Union[str, Iterable[str], None], delimiter: str = ',') -> List[str]:
    """
    Normalize a tag collection.

    Accepts a list or a delimited string. Blank tags are dropped and
    duplicates removed, keeping first-occurrence order for display.

    Example:
        >>> normalize_tags(" Vegan, organic ,VEGAN,, ")
        ['vegan', 'organic']
    """
    if not tags:
        return []
    if isinstance(tags, str):
        tags = tags.split(delimiter)

    seen = set()
    result = []
    for tag in tags:
        normalized = normalize_tag(tag)
        if normalized and normalized not in seen:
            seen.add(normalized)
            result.append(normalized)
    return result


def find_duplicate_names(names: Iterable[str]) -> Dict[str, List[str]]:
    """
    Group names that collide under normalize_name().

    Returns:
        Mapping of comparison key -> raw names, only for keys seen twice or more
    """
    groups = defaultdict(list)
    for name in names:
        key = normalize_name(name)
        if key:
            groups[key].append(name)
    return {key: group for key, group in groups.items() if len(group) > 1}
