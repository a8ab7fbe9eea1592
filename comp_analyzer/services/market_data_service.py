import asyncio
import os
import logging
from datetime import datetime, timezone

from comp_analyzer.models.market_data import CompanyFinancials

logger = logging.getLogger(__name__)


class MarketDataUnavailableError(Exception):
    """Raised when neither the live provider nor the mock table has data for a ticker."""
    def __init__(self, ticker: str, reason: str):
        self.ticker = ticker
        super().__init__(f"No financial data for {ticker}: {reason}")


# Snapshot figures used in mock mode and when the live provider fails
MOCK_FINANCIALS: dict[str, dict] = {
    # B2B SaaS
    "CRM": {"name": "Salesforce", "market_cap": 248_700_000_000, "revenue": 31_400_000_000, "pe_ratio": 52.8, "ev_to_revenue": 8.1, "ev_to_ebitda": 45.2, "one_year_change": 24.3},
    "NOW": {"name": "ServiceNow", "market_cap": 156_200_000_000, "revenue": 8_900_000_000, "pe_ratio": 78.4, "ev_to_revenue": 17.6, "ev_to_ebitda": 89.1, "one_year_change": 31.7},
    "MNDY": {"name": "Monday.com", "market_cap": 11_800_000_000, "revenue": 906_000_000, "pe_ratio": None, "ev_to_revenue": 13.0, "ev_to_ebitda": None, "one_year_change": -12.4},
    "ASAN": {"name": "Asana", "market_cap": 3_200_000_000, "revenue": 652_000_000, "pe_ratio": None, "ev_to_revenue": 4.9, "ev_to_ebitda": None, "one_year_change": -28.1},
    "SMAR": {"name": "Smartsheet", "market_cap": 7_100_000_000, "revenue": 1_000_000_000, "pe_ratio": None, "ev_to_revenue": 7.1, "ev_to_ebitda": None, "one_year_change": 18.9},
    "TEAM": {"name": "Atlassian", "market_cap": 52_000_000_000, "revenue": 4_400_000_000, "pe_ratio": None, "ev_to_revenue": 11.6, "ev_to_ebitda": 150.0, "one_year_change": 6.2},
    "ZM": {"name": "Zoom", "market_cap": 21_000_000_000, "revenue": 4_500_000_000, "pe_ratio": 24.1, "ev_to_revenue": 3.2, "ev_to_ebitda": 14.8, "one_year_change": 4.5},
    "DDOG": {"name": "Datadog", "market_cap": 42_000_000_000, "revenue": 2_600_000_000, "pe_ratio": 310.0, "ev_to_revenue": 15.4, "ev_to_ebitda": 80.0, "one_year_change": 22.0},
    "SNOW": {"name": "Snowflake", "market_cap": 65_000_000_000, "revenue": 3_400_000_000, "pe_ratio": None, "ev_to_revenue": 18.2, "ev_to_ebitda": None, "one_year_change": -9.8},
    "HUBS": {"name": "HubSpot", "market_cap": 33_000_000_000, "revenue": 2_600_000_000, "pe_ratio": None, "ev_to_revenue": 12.3, "ev_to_ebitda": 160.0, "one_year_change": 14.7},
    "WDAY": {"name": "Workday", "market_cap": 68_000_000_000, "revenue": 8_000_000_000, "pe_ratio": 48.0, "ev_to_revenue": 8.0, "ev_to_ebitda": 40.5, "one_year_change": 2.1},
    # Manufacturing technology
    "PTC": {"name": "PTC", "market_cap": 22_000_000_000, "revenue": 2_300_000_000, "pe_ratio": 60.0, "ev_to_revenue": 10.2, "ev_to_ebitda": 29.0, "one_year_change": 12.0},
    "ADSK": {"name": "Autodesk", "market_cap": 55_000_000_000, "revenue": 5_700_000_000, "pe_ratio": 52.0, "ev_to_revenue": 9.6, "ev_to_ebitda": 34.0, "one_year_change": 9.0},
    # E-commerce
    "SHOP": {"name": "Shopify", "market_cap": 98_000_000_000, "revenue": 7_900_000_000, "pe_ratio": 75.0, "ev_to_revenue": 12.0, "ev_to_ebitda": 95.0, "one_year_change": 35.0},
    "EBAY": {"name": "eBay", "market_cap": 27_000_000_000, "revenue": 10_100_000_000, "pe_ratio": 11.0, "ev_to_revenue": 2.9, "ev_to_ebitda": 9.5, "one_year_change": 18.0},
    # Fintech
    "PYPL": {"name": "PayPal", "market_cap": 70_000_000_000, "revenue": 30_000_000_000, "pe_ratio": 17.0, "ev_to_revenue": 2.3, "ev_to_ebitda": 11.0, "one_year_change": 10.5},
    # AI / data analytics
    "PLTR": {"name": "Palantir", "market_cap": 170_000_000_000, "revenue": 2_600_000_000, "pe_ratio": 380.0, "ev_to_revenue": 62.0, "ev_to_ebitda": 300.0, "one_year_change": 240.0},
    "AI": {"name": "C3.ai", "market_cap": 3_400_000_000, "revenue": 350_000_000, "pe_ratio": None, "ev_to_revenue": 7.8, "ev_to_ebitda": None, "one_year_change": -15.0},
}


class MarketDataService:
    def __init__(self):
        self.use_mock = os.getenv("MOCK_MARKET_DATA", "false").lower() == "true"

    async def fetch_financials(self, ticker: str) -> CompanyFinancials:
        if not self.use_mock:
            try:
                return await asyncio.to_thread(self._fetch_yfinance, ticker)
            except Exception as e:
                logger.warning(f"yfinance failed for {ticker}: {e}, falling back to mock")

        return self._get_mock_data(ticker)

    def _fetch_yfinance(self, ticker: str) -> CompanyFinancials:
        import yfinance as yf
        t = yf.Ticker(ticker)
        info = t.info or {}

        revenue = info.get("totalRevenue") or 0
        market_cap = info.get("marketCap") or (info.get("sharesOutstanding") or 0) * (info.get("currentPrice") or 0)
        if not market_cap and not revenue:
            raise ValueError("quote returned no market cap or revenue")

        enterprise_value = info.get("enterpriseValue") or market_cap
        ebitda = info.get("ebitda")

        ev_to_rev = None
        if revenue > 0:
            ev_to_rev = enterprise_value / revenue

        ev_to_ebitda = None
        if ebitda and ebitda > 0:
            ev_to_ebitda = enterprise_value / ebitda

        one_year_change = 0.0
        hist = t.history(period="1y")
        if not hist.empty:
            old_price = float(hist.iloc[0]["Close"])
            current_price = float(info.get("regularMarketPrice") or hist.iloc[-1]["Close"])
            if old_price > 0:
                one_year_change = (current_price - old_price) / old_price * 100

        return CompanyFinancials(
            ticker=ticker,
            name=info.get("shortName"),
            market_cap=float(market_cap),
            revenue=float(revenue),
            pe_ratio=info.get("trailingPE"),
            ev_to_revenue=ev_to_rev,
            ev_to_ebitda=ev_to_ebitda,
            one_year_change=one_year_change,
            summary=info.get("longBusinessSummary") or f"{info.get('shortName', ticker)} is a publicly traded company.",
            data_source_url=f"https://finance.yahoo.com/quote/{ticker}",
            fetched_at=datetime.now(timezone.utc),
            data_source="live_yfinance",
        )

    def _get_mock_data(self, ticker: str) -> CompanyFinancials:
        upper = ticker.upper()
        if upper not in MOCK_FINANCIALS:
            raise MarketDataUnavailableError(upper, "live provider unavailable and no mock entry")
        d = MOCK_FINANCIALS[upper]
        return CompanyFinancials(
            ticker=upper,
            **d,
            summary=f"{upper} financial data from mock source.",
            data_source_url=f"https://finance.yahoo.com/quote/{upper}",
            fetched_at=datetime.now(timezone.utc),
            data_source="mock",
        )
