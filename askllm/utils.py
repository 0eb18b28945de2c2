MAX_ERROR_CHARS = 300


def truncate(text: str, limit: int = MAX_ERROR_CHARS) -> str:
    if text is None:
        return ""
    if len(text) <= limit:
        return text
    return text[:limit] + "...[truncated]"


def mask_secret(value: str, visible: int = 4) -> str:
    if not value:
        return ""
    if len(value) <= visible:
        return "*" * len(value)
    return "*" * 10 + value[-visible:]
