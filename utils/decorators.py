import functools
import logging

def reraise_as(error_cls, action: str):
    """Непредвиденные исключения хранилища превращаются в error_cls.

    Исключения, уже являющиеся error_cls, пробрасываются как есть.
    Повторных попыток нет: ошибка сразу уходит вызывающему.
    """
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except error_cls:
                raise
            except Exception as e:
                logging.getLogger(func.__module__).error(f"❌ {action}: {e}")
                raise error_cls(f"{action}: {e}") from e
        return wrapper
    return decorator
