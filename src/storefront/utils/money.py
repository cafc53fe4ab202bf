"""Display helpers for NT$ amounts."""


def format_amount(amount) -> str:
    """Render an amount the way receipts show it: 100, not 100.0."""
    value = round(float(amount or 0), 2)
    if value.is_integer():
        return str(int(value))
    return f"{value:.2f}".rstrip("0")
