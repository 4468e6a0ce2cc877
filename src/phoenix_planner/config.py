"""Configuration models and loader."""

from pathlib import Path

import yaml
from pydantic import BaseModel
from pydantic_settings import BaseSettings


class MarketDataConfig(BaseModel):
    live_quotes: bool = True
    quote_url: str = "https://query1.finance.yahoo.com/v7/finance/quote"
    timeout_seconds: float = 5.0  # HTTP request timeout for live quotes
    signal_timeout_seconds: float = 8.0  # max wait per signal during diagnosis
    currency: str = "USD"


class SessionDefaults(BaseModel):
    """Position used when no diagnosis has been run yet."""

    symbol: str = "AAPL"
    cost_price: float = 120.0
    quantity: int = 100


class StrategyDefaults(BaseModel):
    supplement_quantity: int = 100
    supplement_discount: float = 0.95  # add price as a fraction of current price
    swap_fraction: float = 0.3  # share of holdings sold on swap
    swap_target: str = "MSFT"


class AppConfig(BaseModel):
    market_data: MarketDataConfig = MarketDataConfig()
    defaults: SessionDefaults = SessionDefaults()
    strategy: StrategyDefaults = StrategyDefaults()


class Settings(BaseSettings):
    phoenix_db_path: str = "phoenix_planner.db"
    phoenix_config: str = "config.yaml"
    port: int = 8000

    model_config = {"env_prefix": "", "case_sensitive": False}


def load_config(path: str | Path = "config.yaml") -> AppConfig:
    """Load application config from YAML file."""
    config_path = Path(path)
    if config_path.exists():
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        return AppConfig(**data)
    return AppConfig()
