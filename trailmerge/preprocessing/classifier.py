"""
Tag based classification

Maps OSM tags to search factor, icon, color and category
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Protocol

from ..config import get_config, PreprocessConfig


class Categories:
    NONE = "None"


@dataclass(frozen=True)
class Classification:
    search_factor: float
    icon: str
    color: str
    category: str


class TagClassifier(Protocol):
    """Anything that maps tags to a search classification"""

    def classify(self, tags: Mapping[str, Any]) -> Classification:
        ...


class TagsClassifier:
    """Classifies elements by the first matching category rule"""

    def __init__(self, config: Optional[PreprocessConfig] = None):
        self.config = config or get_config().preprocess
        self.rules: List[Dict[str, Any]] = self.config.category_rules

    def classify(self, tags: Mapping[str, Any]) -> Classification:
        """
        Classify an element by its tags

        A rule matches when the tag key is present and, if the rule lists
        values, the tag value is one of them.
        """
        for rule in self.rules:
            value = tags.get(rule["key"])
            if value is None:
                continue
            values = rule.get("values")
            if values and value not in values:
                continue
            return Classification(
                search_factor=rule.get("search_factor", self.config.default_search_factor),
                icon=rule["icon"],
                color=rule["color"],
                category=rule["category"]
            )
        return Classification(
            search_factor=self.config.default_search_factor,
            icon=self.config.default_icon,
            color=self.config.default_color,
            category=Categories.NONE
        )
