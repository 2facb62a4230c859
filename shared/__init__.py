"""
Схемы запросов и ответов API
"""
