from finflow.config import settings

# Symbols written before the number; anything else goes after it.
PREFIX_SYMBOLS = ("€", "$", "£", "¥", "₹", "₩", "₺", "₪", "₱", "₽")


def format_amount(amount: float, symbol: str | None = None) -> str:
    sym = symbol or settings.currency_symbol
    amount = round(amount, 2)
    sign = "-" if amount < 0 else ""
    if sym in PREFIX_SYMBOLS:
        return f"{sign}{sym}{abs(amount):.2f}"
    return f"{sign}{abs(amount):.2f} {sym}"
