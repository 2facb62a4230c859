"""
Вспомогательные функции: время, логирование, валидация
"""
