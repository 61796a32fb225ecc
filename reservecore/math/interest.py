"""Interest accumulation factors.

Both functions return a ray growth factor for the interval
``[last_update_timestamp, current_timestamp]`` at an annualized ray rate.
"""

from reservecore.math.wad_ray import RAY, ray_mul

SECONDS_PER_YEAR = 365 * 24 * 3600


def calculate_linear_interest(
    rate: int, last_update_timestamp: int, current_timestamp: int
) -> int:
    """Simple interest factor: ``1 + rate * dt / year``.

    Used for the liquidity index, which compounds implicitly each time the
    reserve is touched.
    """
    time_delta = current_timestamp - last_update_timestamp
    return RAY + rate * time_delta // SECONDS_PER_YEAR


def calculate_compounded_interest(
    rate: int, last_update_timestamp: int, current_timestamp: int
) -> int:
    """Approximate ``(1 + rate/year) ** dt`` with a binomial expansion.

    The expansion is truncated after the cubic term:

        1 + x*n + C(n, 2)*x^2 + C(n, 3)*x^3,   x = rate / SECONDS_PER_YEAR

    Every dropped term is positive and every division truncates, so the
    result is never above the true exponential. For per-second rates in the
    realistic range the relative error is far below 1e-9 over a day.

    Args:
        rate: Annual rate in ray.
        last_update_timestamp: Start of the interval (seconds).
        current_timestamp: End of the interval (seconds).

    Returns:
        Growth factor in ray (``RAY`` when no time has passed).
    """
    exp = current_timestamp - last_update_timestamp
    if exp <= 0:
        return RAY

    exp_minus_one = exp - 1
    exp_minus_two = exp - 2 if exp > 2 else 0

    rate_per_second = rate // SECONDS_PER_YEAR
    base_power_two = ray_mul(rate_per_second, rate_per_second)
    base_power_three = ray_mul(base_power_two, rate_per_second)

    second_term = exp * exp_minus_one * base_power_two // 2
    third_term = exp * exp_minus_one * exp_minus_two * base_power_three // 6

    return RAY + rate_per_second * exp + second_term + third_term
