def redact_email_for_log(value: str) -> str:
    raw = (value or "").strip()
    if "@" not in raw:
        return "***"
    local, domain = raw.split("@", 1)
    local_tail = local[-2:] if len(local) >= 2 else local
    return f"***{local_tail}@{domain}"
