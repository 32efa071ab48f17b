import math

from afx_app.defaults import FALLBACK_AF_PRICE
from afx_app.schemas import AAMPool, SimulationConfig


# AF that always stays in the pool so af_price remains defined
MIN_AF_FLOOR = 1.0


def initial_aam_pool(config: SimulationConfig) -> AAMPool:
    """Fresh pool seeded from the config's initial LP reserves."""
    usdc = float(config.initial_lp_usdc)
    af = float(config.initial_lp_af)
    return AAMPool(
        usdc_balance=usdc,
        af_balance=af,
        lp_tokens=math.sqrt(usdc * af),
        af_price=usdc / af if af > 0 else FALLBACK_AF_PRICE,
        total_buyback=0.0,
        total_burn=0.0,
    )


def split_deposit(config: SimulationConfig, deposit_amount: float):
    """Return (usdc added as liquidity, usdc budgeted for buyback)."""
    to_lp = deposit_amount * (config.deposit_lp_ratio / 100.0)
    to_buyback = deposit_amount * (config.deposit_buyback_ratio / 100.0)
    return to_lp, to_buyback


def apply_deposit(pool: AAMPool, config: SimulationConfig, deposit_amount: float) -> AAMPool:
    """Apply one deposit's liquidity and buyback legs to the pool.

    Liquidity only adds USDC. The buyback is priced at the pool price before
    this deposit and is capped so that af_balance never drops below
    MIN_AF_FLOOR; budget beyond the cap is not spent. This is not an x*y=k
    swap: the only invariant kept is lp_tokens == sqrt(usdc * af).
    """
    to_lp, to_buyback = split_deposit(config, deposit_amount)
    price_before = pool.af_price

    usdc = pool.usdc_balance
    af = pool.af_balance
    total_buyback = pool.total_buyback

    if to_lp > 0:
        usdc += to_lp

    if to_buyback > 0 and price_before > 0 and af > MIN_AF_FLOOR:
        max_af_can_buy = max(0.0, af - MIN_AF_FLOOR)
        af_want_to_buy = to_buyback / price_before
        af_bought = min(af_want_to_buy, max_af_can_buy)

        if af_bought > 0:
            spent = af_bought * price_before
            usdc += spent
            af -= af_bought
            total_buyback += spent

    af = max(MIN_AF_FLOOR, af)

    return pool.model_copy(
        update={
            "usdc_balance": usdc,
            "af_balance": af,
            "af_price": usdc / af,
            "lp_tokens": math.sqrt(usdc * af),
            "total_buyback": total_buyback,
        }
    )
