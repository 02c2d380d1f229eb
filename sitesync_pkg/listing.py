"""
Paginated listing of the article index, in the same envelope the content source uses,
for the browser-side blog and news loaders.
"""

import math
from typing import Any, Dict, List, Optional

from .models import GeneratedArticle

DEFAULT_PAGE_SIZE = 6
MAX_PAGE_SIZE = 100


def paginate(articles: List[GeneratedArticle], page: int = 1, page_size: int = DEFAULT_PAGE_SIZE,
             category: Optional[str] = None) -> Dict[str, Any]:
    """Slice the (already sorted) index into one 1-based page."""
    page = max(1, int(page))
    page_size = min(max(1, int(page_size)), MAX_PAGE_SIZE)

    if category:
        wanted = category.lower()
        articles = [a for a in articles if (a.category or '').lower() == wanted]

    total = len(articles)
    page_count = math.ceil(total / page_size) if total else 0
    start = (page - 1) * page_size
    data = [a.to_dict() for a in articles[start:start + page_size]]

    return {
        'data': data,
        'meta': {
            'pagination': {
                'page': page,
                'pageSize': page_size,
                'pageCount': page_count,
                'total': total,
            }
        },
    }


def empty_listing(error: str, page: int = 1, page_size: int = DEFAULT_PAGE_SIZE) -> Dict[str, Any]:
    """Listing returned when the index cannot be read, so clients can show an explicit error state."""
    listing = paginate([], page, page_size)
    listing['error'] = error
    return listing
