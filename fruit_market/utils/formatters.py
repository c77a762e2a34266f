from fruit_market.config import settings


def money(v: float) -> str:
    return f"{v:.{settings.decimals}f} {settings.currency}"


def weight(v: float) -> str:
    return f"{v:.{settings.weight_decimals}f} kg"
