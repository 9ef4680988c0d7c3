from defi_risk.models.analysis import AlertLevel


def fmt_usd(value: float | None) -> str:
    if value is None:
        return "N/A"
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.2f}"


def fmt_signed_usd(value: float | None) -> str:
    if value is None:
        return "N/A"
    sign = "+" if value >= 0 else "-"
    return f"{sign}${abs(value):,.2f}"


def fmt_pct(fraction: float | None, decimals: int = 2) -> str:
    """Format a fraction (0.0123) as a percentage ("1.23%")."""
    if fraction is None:
        return "N/A"
    return f"{fraction * 100:.{decimals}f}%"


def fmt_signed_pct(fraction: float | None, decimals: int = 2) -> str:
    if fraction is None:
        return "N/A"
    return f"{fraction * 100:+.{decimals}f}%"


def fmt_change(pct: float) -> str:
    """Format a value that is already in percent units (24h change)."""
    return f"{pct:+.2f}%"


def fmt_number(value: float | None, decimals: int = 3) -> str:
    if value is None:
        return "N/A"
    return f"{value:,.{decimals}f}"


def fmt_amount(value: float) -> str:
    return f"{value:,.4f}"


def level_color(level: AlertLevel) -> str:
    colors = {
        AlertLevel.CRITICAL: "bold red",
        AlertLevel.WARNING: "yellow",
    }
    return colors.get(level, "white")


def threshold_color(value: float, warning: float | None, critical: float) -> str:
    if value > critical:
        return "red"
    if warning is not None and value > warning:
        return "yellow"
    return "green"


def change_color(value: float) -> str:
    return "green" if value >= 0 else "red"
