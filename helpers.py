import os


def parse_bool(value):
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    value = str(value).strip().lower()
    return value in {"1", "true", "yes", "y", "on", "t", "x"}


def parse_float(value):
    if value in (None, "", " "):
        return None
    try:
        return float(str(value).replace(",", "."))
    except (ValueError, TypeError):
        return None


def parse_int(value, default=None):
    if value in (None, ""):
        return default
    try:
        return int(str(value).strip())
    except (ValueError, TypeError):
        return default


def env_config(name, default=None, parser=None):
    raw = os.environ.get(name)
    if raw is None:
        return default
    if parser is None:
        return raw
    parsed = parser(raw)
    return default if parsed is None else parsed


def first_value(value):
    if isinstance(value, (list, tuple)):
        return value[0] if value else None
    return value


def locale_language(locale_code: str | None) -> str | None:
    if not locale_code:
        return None
    language = str(locale_code).replace("-", "_").split("_")[0].strip().lower()
    return language or None
