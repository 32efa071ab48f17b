"""Built-in default parameter set and the backfill table used on migration."""

from afx_app.schemas import DaysConfig, PackageConfig, SimulationConfig


PACKAGE_TIERS = (100, 500, 1000, 3000, 5000, 10000)
DAYS_MODE_TIERS = (30, 60, 90, 180)

# Release split backfilled into persisted packages that predate it
DEFAULT_RELEASE_SPLIT = {
    "release_withdraw_percent": 60.0,
    "release_keep_percent": 20.0,
    "release_convert_percent": 20.0,
}

# Price reported by a pool seeded with no AF at all
FALLBACK_AF_PRICE = 0.1

# tier -> (release_multiplier, staking_period_days, trading_fee_rate, trading_profit_rate, profit_share_percent)
_PACKAGE_TABLE = {
    100: (1.5, 30, 8, 3, 60),
    500: (1.8, 45, 6, 4, 65),
    1000: (2.0, 60, 5, 5, 70),
    3000: (2.5, 90, 4, 6, 75),
    5000: (3.0, 120, 2, 7, 80),
    10000: (3.5, 180, 1, 8, 85),
}

# days -> (release_multiplier, trading_fee_rate, profit_share_percent)
_DAYS_TABLE = {
    30: (1.4, 10, 60),
    60: (1.6, 8, 65),
    90: (1.8, 6, 75),
    180: (2.0, 3, 80),
}


def default_package_configs():
    configs = []
    for tier in PACKAGE_TIERS:
        multiplier, period, fee, profit, share = _PACKAGE_TABLE[tier]
        configs.append(
            PackageConfig(
                tier=tier,
                release_multiplier=multiplier,
                staking_period_days=period,
                trading_fee_rate=fee,
                trading_profit_rate=profit,
                profit_share_percent=share,
                **DEFAULT_RELEASE_SPLIT,
            )
        )
    return configs


def default_days_configs():
    return [
        DaysConfig(
            days=days,
            release_multiplier=multiplier,
            trading_fee_rate=fee,
            trading_profit_rate=10,
            profit_share_percent=share,
            withdraw_fee_percent=20,
        )
        for days, (multiplier, fee, share) in _DAYS_TABLE.items()
    ]


def default_config() -> SimulationConfig:
    return SimulationConfig(
        simulation_mode="days",
        initial_lp_usdc=10_000,       # 10K USDC seeded into the pool
        initial_lp_af=100_000,        # 100K AF seeded into the pool
        deposit_lp_ratio=30,
        deposit_buyback_ratio=20,     # remaining 50% is neither pooled nor bought back
        trading_capital_multiplier=3,
        package_configs=default_package_configs(),
        days_configs=default_days_configs(),
    )
