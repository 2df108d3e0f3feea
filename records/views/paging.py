def paginate(qs, params: dict, default_page_size: int = 50):
    """Slice ``qs`` by ``page``/``pageSize`` and return it with pagination meta."""
    page = params.get('page') or 1
    page_size = params.get('pageSize') or default_page_size
    total = qs.count()
    start = (page - 1) * page_size
    rows = list(qs[start:start + page_size])
    return rows, {'total': total, 'page': page, 'pageSize': page_size}
