"""
Human-readable formatting for user-facing messages.
"""

IEC_UNITS = ["B", "KiB", "MiB", "GiB", "TiB", "PiB", "EiB", "ZiB", "YiB"]


def format_human_readable_size(size: float) -> str:
    """
    Format a byte count in IEC 80000-13:2008 notation.

    Whole bytes have no decimals, larger units two; thousands are separated
    by a space, e.g. "512 B", "10.00 MiB", "1 023.00 KiB".
    """
    unit = 0
    while size / 1024 >= 1 and unit < len(IEC_UNITS) - 1:
        size = size / 1024
        unit += 1

    decimals = 2 if unit else 0
    formatted = f"{size:,.{decimals}f}".replace(",", " ")
    return f"{formatted} {IEC_UNITS[unit]}"
