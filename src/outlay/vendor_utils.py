"""
Vendor detection and per-vendor spending statistics.

Vendor names are inferred from free-text expense descriptions using an
ordered table of regular expressions. This is a heuristic: descriptions
that mention a brand in passing ("gift card from Target") are attributed
to that brand, and unmatched descriptions fall back to their first word.
"""

import csv
import logging
import os
import re
from collections import OrderedDict
from typing import List, Optional, Pattern, Sequence, Tuple, Union

from .models import Category, Expense, VendorSummary
from .summary import percentage_of

logger = logging.getLogger(__name__)

UNKNOWN_VENDOR = 'Unknown Vendor'


# =============================================================================
# BASELINE VENDOR RULES
# (pattern, vendor) pairs, matched case-insensitively in order.
# First match wins, so specific patterns must come before general ones.
# User rules are checked before these.
# =============================================================================
BASELINE_VENDOR_RULES = [
    # Retail
    (r'amazon', 'Amazon'),
    (r'walmart', 'Walmart'),
    (r'target', 'Target'),
    (r'costco', 'Costco'),

    # Food & coffee
    (r'starbucks', 'Starbucks'),
    (r'mcdonald', "McDonald's"),
    (r'subway', 'Subway'),

    # Rideshare & gas
    (r'uber', 'Uber'),
    (r'lyft', 'Lyft'),
    (r'shell', 'Shell'),
    (r'chevron', 'Chevron'),
    (r'\bbp\b', 'BP'),

    # Subscriptions & tech
    (r'netflix', 'Netflix'),
    (r'spotify', 'Spotify'),
    (r'apple', 'Apple'),
    (r'google', 'Google'),
    (r'microsoft', 'Microsoft'),

    # Telecom
    (r'verizon', 'Verizon'),
    (r'at&t|att', 'AT&T'),
    (r't-mobile|tmobile', 'T-Mobile'),

    # Home & electronics
    (r'home\s*depot', 'Home Depot'),
    (r'lowe', "Lowe's"),
    (r'best\s*buy', 'Best Buy'),

    # Grocery
    (r'whole\s*foods', 'Whole Foods'),
    (r'trader\s*joe', "Trader Joe's"),
    (r'safeway', 'Safeway'),
    (r'kroger', 'Kroger'),

    # Pharmacy
    (r'cvs', 'CVS'),
    (r'walgreens', 'Walgreens'),
    (r'rite\s*aid', 'Rite Aid'),
]

Rule = Tuple[Union[str, Pattern], str]
CompiledRule = Tuple[Pattern, str]


def compile_rules(rules: Sequence[Rule]) -> List[CompiledRule]:
    """Compile (pattern, vendor) rules for case-insensitive matching.

    Already-compiled patterns are passed through unchanged.
    """
    compiled = []
    for pattern, vendor in rules:
        if isinstance(pattern, str):
            pattern = re.compile(pattern, re.IGNORECASE)
        compiled.append((pattern, vendor))
    return compiled


_BASELINE_COMPILED = compile_rules(BASELINE_VENDOR_RULES)


def load_vendor_rules(csv_path):
    """Load user vendor rules from a CSV file.

    CSV format: Pattern,Vendor

    Lines starting with # are treated as comments and skipped.
    Patterns are Python regular expressions matched case-insensitively
    against expense descriptions. Invalid patterns are skipped with a warning.

    Returns list of tuples: (pattern, vendor)

    Raises ValueError if the file cannot be read or is not UTF-8 text.
    """
    if not os.path.exists(csv_path):
        return []  # No user rules file, just use baseline

    try:
        with open(csv_path, 'r', encoding='utf-8') as f:
            # Filter out comment lines before passing to DictReader
            lines = [line for line in f if not line.strip().startswith('#')]
    except UnicodeDecodeError as e:
        raise ValueError(f"Vendor rules file is not valid UTF-8: {csv_path} ({e.reason})") from e
    except OSError as e:
        raise ValueError(f"Could not read vendor rules file {csv_path}: {e.strerror or e}") from e

    rules = []
    reader = csv.DictReader(lines)
    for row in reader:
        pattern = (row.get('Pattern') or '').strip()
        vendor = (row.get('Vendor') or '').strip()
        if not pattern:
            continue
        if not vendor:
            logger.warning("Skipping rule '%s' in %s: no vendor name", pattern, csv_path)
            continue
        try:
            re.compile(pattern)
        except re.error as e:
            logger.warning("Skipping invalid pattern '%s' in %s: %s", pattern, csv_path, e)
            continue
        rules.append((pattern, vendor))

    logger.debug("Loaded %d vendor rules from %s", len(rules), csv_path)
    return rules


def get_all_rules(csv_path=None):
    """Get combined vendor rules: user rules first (override), then baseline.

    Args:
        csv_path: Optional path to the user's vendor_rules.csv

    Returns:
        List of (pattern, vendor) tuples.
    """
    user_rules = []
    if csv_path:
        user_rules = load_vendor_rules(csv_path)

    return user_rules + list(BASELINE_VENDOR_RULES)


def fallback_vendor_name(description: str) -> str:
    """Guess a vendor from the first word of a description.

    Used when no pattern matches. Words of two characters or fewer are
    too ambiguous to be a vendor name.
    """
    words = description.strip().split()
    if words and len(words[0]) > 2:
        word = words[0]
        return word[0].upper() + word[1:].lower()
    return UNKNOWN_VENDOR


def detect_vendor(description: str, rules: Optional[Sequence[Rule]] = None) -> str:
    """Return the best-guess vendor name for a description.

    Args:
        description: Free-text expense description
        rules: Optional (pattern, vendor) list; defaults to the baseline table

    Returns:
        Vendor display name. Never empty.
    """
    compiled = _BASELINE_COMPILED if rules is None else compile_rules(rules)
    for pattern, vendor in compiled:
        if pattern.search(description):
            return vendor
    return fallback_vendor_name(description)


# =============================================================================
# VENDOR AGGREGATION
# =============================================================================

def calculate_vendor_summaries(expenses: Sequence[Expense],
                               rules: Optional[Sequence[Rule]] = None) -> List[VendorSummary]:
    """Group expenses by detected vendor and compute per-vendor statistics.

    Args:
        expenses: Expense records (not modified)
        rules: Optional vendor rules, as for detect_vendor()

    Returns:
        VendorSummary list sorted by total amount, largest first. Vendors
        with equal totals keep the order in which they were first seen.
    """
    if not expenses:
        return []

    compiled = _BASELINE_COMPILED if rules is None else compile_rules(rules)

    by_vendor = OrderedDict()
    for expense in expenses:
        vendor = detect_vendor(expense.description, compiled)
        if vendor not in by_vendor:
            by_vendor[vendor] = {
                'total': 0.0,
                'count': 0,
                'categories': OrderedDict(),  # Category -> amount, first-seen order
            }
        data = by_vendor[vendor]
        data['total'] += expense.amount
        data['count'] += 1
        data['categories'][expense.category] = data['categories'].get(expense.category, 0.0) + expense.amount

    total_spending = sum(e.amount for e in expenses)

    summaries = []
    for vendor, data in by_vendor.items():
        # Strictly greater: the first category seen keeps a tie
        top_category = Category.OTHER
        top_amount = 0.0
        for category, amount in data['categories'].items():
            if amount > top_amount:
                top_amount = amount
                top_category = category

        summaries.append(VendorSummary(
            vendor=vendor,
            total_amount=data['total'],
            transaction_count=data['count'],
            average_transaction=data['total'] / data['count'],
            percentage=percentage_of(data['total'], total_spending),
            top_category=top_category,
        ))

    summaries.sort(key=lambda s: s.total_amount, reverse=True)
    return summaries
