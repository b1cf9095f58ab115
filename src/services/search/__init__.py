"""
Search Service: поисковый индекс постов, обновляется событиями post.*.
"""
