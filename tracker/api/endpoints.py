"""REST endpoint paths, relative to ``{api_base_url}{api_version}``."""

EXTRACT_TRANSACTIONS = "/extract-transactions"
TRANSACTION_HISTORY = "/transaction-history"

PORTFOLIO_SUMMARY = "/portfolio/summary"
PORTFOLIO_HOLDINGS = "/portfolio/holdings"
PORTFOLIO_HISTORICAL_CHART = "/portfolio/historical-chart"


def transaction_path(transaction_id: str) -> str:
    return f"{TRANSACTION_HISTORY}/{transaction_id}"


def holding_path(symbol: str) -> str:
    return f"{PORTFOLIO_HOLDINGS}/{symbol.strip().upper()}"
