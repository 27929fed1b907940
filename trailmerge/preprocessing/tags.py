"""
Tag reconciliation

- merge_missing_tags: the target's tags are authoritative (element merging)
- merge_overriding_tags: the new tags win (user edits)
"""

from typing import Dict, Mapping, Optional


def merge_missing_tags(source: Mapping[str, str], target: Optional[Mapping[str, str]]) -> Dict[str, str]:
    """
    Add every key of source that target doesn't have

    Args:
        source: Tags to take missing keys from
        target: Tags that win on conflicts

    Returns:
        New tag dict: target's tags followed by the keys only source has
    """
    merged = dict(target or {})
    for key, value in source.items():
        if key not in merged:
            merged[key] = value
    return merged


def merge_overriding_tags(source: Mapping[str, str], target: Optional[Mapping[str, str]]) -> Dict[str, str]:
    """
    Add or replace every key of source in target

    Args:
        source: New tags, these win on conflicts
        target: Existing tags

    Returns:
        New tag dict
    """
    merged = dict(target or {})
    merged.update(source)
    return merged
