"""
Post Service: источник истины по постам, публикует post.created / post.deleted.
"""
