"""
String manipulation and formatting utilities
"""

import re


class StringHelper:
    """General string manipulation utilities"""

    @staticmethod
    def clean_whitespace(text: str) -> str:
        """Collapse runs of whitespace and strip the ends"""
        if not text:
            return ""
        return re.sub(r'\s+', ' ', text).strip()

    @staticmethod
    def truncate(text: str, max_length: int) -> str:
        if not text or len(text) <= max_length:
            return text
        return text[:max_length].rstrip()

    @staticmethod
    def category_key(text: str) -> str:
        """'Respect house rules' -> 'respect_house_rules'"""
        if not text:
            return ""
        return re.sub(r'\s+', '_', text.strip().lower())
