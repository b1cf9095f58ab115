"""
Media Service: метаданные медиа, очистка медиа удалённых постов.
"""
