"""Page metadata shared by every paginated listing."""
import math
from typing import Any, Dict, List


def build_page(items: List[Any], total: int, page: int, limit: int) -> Dict[str, Any]:
    """
    Wrap one page of results.

    total_pages is ceil(total / limit), so an empty result has 0 pages.
    """
    return {
        "data": items,
        "meta": {
            "total": total,
            "page": page,
            "limit": limit,
            "total_pages": math.ceil(total / limit) if limit else 0,
        },
    }
