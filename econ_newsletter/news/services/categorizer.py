from typing import List, Tuple

from ..models import NewsItem

DEFAULT_CATEGORY = "general"

# Checked in order, first match wins
CATEGORY_RULES: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("markets", ("market", "stock", "trading")),
    ("policy", ("policy", "government", "regulation")),
    ("global", ("global", "international", "trade")),
    ("tech", ("tech", "technology", "digital")),
    ("crypto", ("crypto", "bitcoin", "blockchain")),
)

CATEGORIES: Tuple[str, ...] = tuple(name for name, _ in CATEGORY_RULES) + (DEFAULT_CATEGORY,)


def categorize_item(item: NewsItem) -> str:
    text = f"{item.title} {item.description}".lower()
    for category, keywords in CATEGORY_RULES:
        if any(keyword in text for keyword in keywords):
            return category
    return DEFAULT_CATEGORY


class Categorizer:

    def categorize(self, items: List[NewsItem]) -> List[NewsItem]:
        return [item.with_category(categorize_item(item)) for item in items]
