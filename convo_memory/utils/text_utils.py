"""
Text utilities for cleaning generated responses and reading names out of messages.
"""

import re
from typing import Optional

EMOJI_PATTERN = re.compile('['
                           '\U0001F300-\U0001F5FF'
                           '\U0001F600-\U0001F64F'
                           '\U0001F680-\U0001F6FF'
                           '\U0001F700-\U0001F77F'
                           '\U0001F780-\U0001F7FF'
                           '\U0001F800-\U0001F8FF'
                           '\U0001F900-\U0001F9FF'
                           '\U0001FA00-\U0001FA6F'
                           '\U0001FA70-\U0001FAFF'
                           '\u2600-\u26FF'
                           '\u2700-\u27BF'
                           ']')

# Joiners and variation selectors left behind once the pictographs are gone
EMOJI_RESIDUE_PATTERN = re.compile('[\u200d\ufe0e\ufe0f]')

EMOTICON_PATTERN = re.compile(r"[:;=][-']?[)(DP]")

GREETING_PATTERN = re.compile(r"\b(?:hi|hey|hello|what's up|sup)\s+(\w+)", re.IGNORECASE)
GENERIC_ADDRESSEES = frozenset(['there', 'you', 'guys', 'everyone', 'anybody', 'all'])


def strip_emojis(text: str) -> str:
    """Remove emoji pictographs and ASCII emoticons such as ':)' or ';-P'.

    Args:
        text: Raw generated text

    Returns:
        Text without emojis, surrounding whitespace trimmed
    """
    if not text:
        return ''
    text = EMOTICON_PATTERN.sub('', text)
    text = EMOJI_PATTERN.sub('', text)
    return EMOJI_RESIDUE_PATTERN.sub('', text).strip()


def greeting_name(text: Optional[str]) -> Optional[str]:
    """Name following a greeting ('hey Sam'), ignoring generic addressees."""
    if not text:
        return None
    match = GREETING_PATTERN.search(text)
    if not match:
        return None
    name = match.group(1)
    if len(name) <= 2 or name.lower() in GENERIC_ADDRESSEES:
        return None
    return name
