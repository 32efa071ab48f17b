from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


SIMULATION_MODES = {"days", "package"}


def _check_pct(v, info):
    if v < 0 or v > 100:
        raise ValueError(f"{info.field_name} must be between 0 and 100")
    return v


class PackageConfig(BaseModel):
    tier: int
    release_multiplier: float = 1.5          # total release = deposit × multiplier
    staking_period_days: int = 30
    trading_fee_rate: float = 5.0
    trading_profit_rate: float = 5.0
    profit_share_percent: float = 70.0

    # Release choice split (intended to sum to 100, not enforced)
    release_withdraw_percent: float = 60.0
    release_keep_percent: float = 20.0
    release_convert_percent: float = 20.0

    @field_validator(
        "trading_fee_rate",
        "profit_share_percent",
        "release_withdraw_percent",
        "release_keep_percent",
        "release_convert_percent",
    )
    @classmethod
    def pct_range(cls, v, info):
        return _check_pct(v, info)

    @field_validator("trading_profit_rate")
    @classmethod
    def profit_rate_range(cls, v):
        if v < -100 or v > 100:
            raise ValueError("trading_profit_rate must be between -100 and 100")
        return v

    @field_validator("release_multiplier")
    @classmethod
    def multiplier_min(cls, v):
        if v < 0.1:
            raise ValueError("release_multiplier must be >= 0.1")
        return v

    @field_validator("staking_period_days")
    @classmethod
    def period_positive(cls, v):
        if v < 1:
            raise ValueError("staking_period_days must be >= 1")
        return v


class DaysConfig(BaseModel):
    days: int
    release_multiplier: float = 1.4          # total AF = deposit / price × multiplier
    trading_fee_rate: float = 10.0
    trading_profit_rate: float = 10.0
    profit_share_percent: float = 60.0
    withdraw_fee_percent: float = 20.0

    @field_validator("trading_fee_rate", "profit_share_percent", "withdraw_fee_percent")
    @classmethod
    def pct_range(cls, v, info):
        return _check_pct(v, info)

    @field_validator("trading_profit_rate")
    @classmethod
    def profit_rate_range(cls, v):
        if v < -100 or v > 100:
            raise ValueError("trading_profit_rate must be between -100 and 100")
        return v

    @field_validator("release_multiplier")
    @classmethod
    def multiplier_min(cls, v):
        if v < 1:
            raise ValueError("release_multiplier must be >= 1")
        return v

    @field_validator("days")
    @classmethod
    def days_positive(cls, v):
        if v < 1:
            raise ValueError("days must be >= 1")
        return v


class SimulationConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    simulation_mode: str = "days"

    # Initial LP pool reserves
    initial_lp_usdc: float
    initial_lp_af: float

    # Deposit allocation; whatever is left over is neither pooled nor bought back
    deposit_lp_ratio: float
    deposit_buyback_ratio: float

    trading_capital_multiplier: float = 3.0

    package_configs: List[PackageConfig]
    days_configs: List[DaysConfig] = Field(default_factory=list)

    @field_validator("initial_lp_usdc", "initial_lp_af")
    @classmethod
    def non_negative_reserves(cls, v, info):
        if v < 0:
            raise ValueError(f"{info.field_name} must be >= 0")
        return v

    @field_validator("deposit_lp_ratio", "deposit_buyback_ratio")
    @classmethod
    def ratio_range(cls, v, info):
        return _check_pct(v, info)

    @field_validator("trading_capital_multiplier")
    @classmethod
    def capital_multiplier_min(cls, v):
        if v < 1:
            raise ValueError("trading_capital_multiplier must be >= 1")
        return v

    @field_validator("simulation_mode")
    @classmethod
    def valid_mode(cls, v):
        vv = str(v).lower().strip()
        if vv not in SIMULATION_MODES:
            raise ValueError("simulation_mode must be one of: days, package")
        return vv

    @model_validator(mode="after")
    def unique_keys(self):
        tiers = [p.tier for p in self.package_configs]
        if len(tiers) != len(set(tiers)):
            raise ValueError("package_configs tiers must be unique")
        days = [d.days for d in self.days_configs]
        if len(days) != len(set(days)):
            raise ValueError("days_configs days must be unique")
        return self

    def package_for(self, tier: int) -> Optional[PackageConfig]:
        """Look a package up by tier value, never by position."""
        for pkg in self.package_configs:
            if pkg.tier == tier:
                return pkg
        return None


class StakingOrder(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    amount: float
    mode: str = "package"
    duration_days: Optional[int] = None
    package_tier: Optional[int] = None
    start_day: int = 0
    # 0 = every released AF stays in the system, 100 = all of it is withdrawn
    withdraw_percent: float = 60.0

    # Release progress, advanced by the release generator
    total_af_to_release: float = 0.0
    af_withdrawn: float = 0.0
    af_kept_in_system: float = 0.0

    @field_validator("amount")
    @classmethod
    def amount_positive(cls, v):
        if v <= 0:
            raise ValueError("amount must be > 0")
        return v

    @field_validator("mode")
    @classmethod
    def valid_mode(cls, v):
        vv = str(v).lower().strip()
        if vv not in SIMULATION_MODES:
            raise ValueError("mode must be one of: days, package")
        return vv

    @field_validator("start_day")
    @classmethod
    def start_day_non_negative(cls, v):
        if v < 0:
            raise ValueError("start_day must be >= 0")
        return v

    @field_validator("duration_days")
    @classmethod
    def duration_positive(cls, v):
        if v is not None and v < 1:
            raise ValueError("duration_days must be >= 1")
        return v

    @field_validator("withdraw_percent")
    @classmethod
    def withdraw_range(cls, v, info):
        return _check_pct(v, info)


class OrderInput(BaseModel):
    """Deposit request; unset fields are stamped from the current state."""

    amount: float
    id: Optional[str] = None
    mode: Optional[str] = None
    duration_days: Optional[int] = None
    package_tier: Optional[int] = None
    start_day: Optional[int] = None
    withdraw_percent: float = 60.0


class AAMPool(BaseModel):
    model_config = ConfigDict(frozen=True)

    usdc_balance: float
    af_balance: float
    lp_tokens: float
    af_price: float
    total_buyback: float = 0.0
    total_burn: float = 0.0


class SimulationState(BaseModel):
    model_config = ConfigDict(frozen=True)

    config: SimulationConfig
    orders: Tuple[StakingOrder, ...] = ()
    pool: AAMPool
    current_day: int = 0


class OrderDailyDetail(BaseModel):
    day: int
    order_id: str
    principal_release: float = 0.0     # USDC value of the principal component
    interest_release: float = 0.0      # USDC value of the interest component
    daily_af_release: float = 0.0
    af_price: float = 0.0
    cum_af_released: float = 0.0
    af_in_system: float = 0.0          # AF kept in the system, not withdrawn
    trading_capital: float = 0.0
    forex_income: float = 0.0
    withdrawn_af: float = 0.0
    withdraw_fee: float = 0.0          # USDC


class DailySummary(BaseModel):
    principal_release: float = 0.0
    interest_release: float = 0.0
    daily_af_release: float = 0.0
    cum_af_released: float = 0.0
    af_in_system: float = 0.0
    trading_capital: float = 0.0
    forex_income: float = 0.0
    withdrawn_af: float = 0.0
    withdraw_fee: float = 0.0


class DailyPage(BaseModel):
    page: int
    page_size: int
    total_pages: int
    total_rows: int
    rows: List[OrderDailyDetail]
    summary: DailySummary


# ── Request bodies ──

class AggregateRequest(BaseModel):
    total_days: int
    order_details: Dict[str, List[OrderDailyDetail]] = Field(default_factory=dict)
    page: Optional[int] = None
    page_size: Optional[int] = None

    @field_validator("total_days")
    @classmethod
    def total_days_non_negative(cls, v):
        if v < 0:
            raise ValueError("total_days must be >= 0")
        return v

    @field_validator("page_size")
    @classmethod
    def page_size_positive(cls, v):
        if v is not None and v < 1:
            raise ValueError("page_size must be >= 1")
        return v


class PageRequest(BaseModel):
    rows: List[OrderDailyDetail]
    page: int = 0
    page_size: Optional[int] = None

    @field_validator("page_size")
    @classmethod
    def page_size_positive(cls, v):
        if v is not None and v < 1:
            raise ValueError("page_size must be >= 1")
        return v


class SimulationDayInput(BaseModel):
    day: int
