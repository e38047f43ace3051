from __future__ import annotations


DEFAULT_PER_PAGE = 20
MAX_PER_PAGE = 100


def paginate(query, page: int | None, per_page: int | None, serialize) -> dict:
    """
    Run `query` with optional pagination.

    page=None returns every row. Otherwise page is 1-indexed and per_page
    defaults to 20, kept within 1..100.
    """
    if page is None:
        rows = query.all()
        return {"items": [serialize(r) for r in rows], "count": len(rows)}

    per_page = max(1, min(per_page or DEFAULT_PER_PAGE, MAX_PER_PAGE))
    page = max(page, 1)

    total = query.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1

    rows = query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [serialize(r) for r in rows],
        "count": len(rows),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


LIKE_ESCAPE = "\\"


def contains_pattern(value: str) -> str:
    """Substring LIKE pattern for user text; % and _ match literally (use escape=LIKE_ESCAPE)."""
    escaped = (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
    return f"%{escaped}%"
