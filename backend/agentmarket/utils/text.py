"""
Text processing utilities.

WHAT: Helpers for pulling structured values out of free text
WHY: Human replies are free text but may carry a price floor
HOW: Regex-based extraction
"""

import re
from typing import Optional

# "$1,200", "$ 950.50", "700 dollars", "800 USD"
_DOLLAR_PREFIX = re.compile(r"\$\s*(\d{1,3}(?:,\d{3})+|\d+)(\.\d+)?")
_DOLLAR_SUFFIX = re.compile(r"\b(\d{1,3}(?:,\d{3})+|\d+)(\.\d+)?\s*(?:dollars?|usd|bucks)\b", re.IGNORECASE)


def extract_dollar_amount(text: str) -> Optional[float]:
    """
    Return the first dollar figure in `text`, or None.

    Bare numbers without a currency marker are ignored so that replies
    like "it is 3 years old" are not read as prices.
    """
    if not text:
        return None

    matches = [m for m in (_DOLLAR_PREFIX.search(text), _DOLLAR_SUFFIX.search(text)) if m]
    if not matches:
        return None

    first = min(matches, key=lambda m: m.start())
    whole, fraction = first.group(1), first.group(2) or ""
    return float(whole.replace(",", "") + fraction)
