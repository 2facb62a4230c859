from typing import Any, Dict, Iterable, List

def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False

def missing_fields(data: Dict[str, Any], required: Iterable[str]) -> List[str]:
    return [name for name in required if is_blank(data.get(name))]
