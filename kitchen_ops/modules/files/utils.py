SIZE_UNITS = ["Bytes", "KB", "MB", "GB"]


def format_file_size(size_bytes: int) -> str:
    """1536 -> '1.5 KB'. Two decimals at most, trailing zeros dropped."""
    if not size_bytes or size_bytes <= 0:
        return "0 Bytes"
    value = float(size_bytes)
    index = 0
    while value >= 1024 and index < len(SIZE_UNITS) - 1:
        value /= 1024
        index += 1
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {SIZE_UNITS[index]}"
