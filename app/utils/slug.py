"""
Slug generation utility
"""
import re
import unicodedata
from typing import Callable, Optional


def generate_slug(text: str) -> str:
    """
    Generate a URL-friendly slug from text

    Args:
        text: Text to convert to slug

    Returns:
        Slug made of [a-z0-9-] only; may be empty when text has no usable characters
    """
    text = str(text).lower().strip()

    # Remove accents/diacritics
    text = unicodedata.normalize('NFKD', text)
    text = text.encode('ascii', 'ignore').decode('ascii')

    text = re.sub(r'\s+', '-', text)
    text = re.sub(r'[^a-z0-9-]', '', text)
    text = re.sub(r'-{2,}', '-', text)

    # Remove leading/trailing hyphens
    return text.strip('-')


def make_unique_slug(
    base_slug: str,
    is_taken: Callable[[str], bool],
    max_length: int = 100,
    fallback: Optional[str] = None,
    min_length: int = 1
) -> str:
    """
    Make a slug unique by appending -1, -2, ... until is_taken() says it is free

    Args:
        base_slug: Base slug to make unique
        is_taken: Callback checking the store for an existing slug
        max_length: Maximum length of the slug
        fallback: Used to build the base slug when base_slug is shorter than min_length
        min_length: Minimum length of the base slug

    Returns:
        Unique slug
    """
    if len(base_slug or "") < min_length:
        base_slug = generate_slug(f"category-{fallback}") if fallback else "category"

    slug = base_slug[:max_length].rstrip('-')
    counter = 1

    while is_taken(slug):
        suffix = f"-{counter}"
        # Ensure we don't exceed max_length
        available_length = max_length - len(suffix)
        slug = f"{base_slug[:available_length].rstrip('-')}{suffix}"
        counter += 1

    return slug
