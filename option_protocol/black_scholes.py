"""
black_scholes.py - Black-Scholes Option Pricing

Black-Scholes formulas with a continuously compounded risk-free rate and time
to expiry measured in years.

Provides:
- Normal distribution functions (CDF, PDF)
- d1, d2
- Option pricing (call, put, price)
- Delta (used for read-only quotes)

Reproducibility:
    The normal CDF is N(x) = 0.5 * (1 + erf(x / sqrt(2))) with scipy.special.erf
    (Cephes rational approximation, absolute error below 1e-15) evaluated in
    IEEE-754 double precision. The Decimal interface quantizes every result to
    PRICE_PLACES decimal places with ROUND_HALF_EVEN; that quantized value is
    the fair value used for settlement. Identities such as put-call parity hold
    to within PRICE_TOLERANCE.
"""

import math
import numpy as np
from typing import Union
from scipy.special import erf as scipy_erf
from decimal import Decimal, ROUND_HALF_EVEN

from .core import InvalidPricingInput


# Type alias for scalar or array inputs
Numeric = Union[float, np.ndarray]

# Constants
SQRT_2 = math.sqrt(2.0)
INV_SQRT_2PI = 1.0 / math.sqrt(2.0 * math.pi)
PRICE_PLACES = 8
PRICE_QUANTUM = Decimal(10) ** -PRICE_PLACES
PRICE_TOLERANCE = Decimal("1e-6")


# ============================================================================
# NORMAL DISTRIBUTION FUNCTIONS
# ============================================================================

def normal_cdf(x: Numeric) -> Numeric:
    """Standard normal cumulative distribution function."""
    return 0.5 * (1.0 + scipy_erf(np.asarray(x) / SQRT_2))


def normal_pdf(x: Numeric) -> Numeric:
    """Standard normal probability density function."""
    return INV_SQRT_2PI * np.exp(-0.5 * x * x)


# ============================================================================
# D1 AND D2
# ============================================================================

def _validate_bs_inputs(s: Numeric, k: Numeric, t: Numeric, v: Numeric, r: Numeric) -> None:
    """Reject inputs that would divide by zero or produce NaN/Inf."""
    s_arr = np.asarray(s, dtype=float)
    k_arr = np.asarray(k, dtype=float)
    t_arr = np.asarray(t, dtype=float)
    v_arr = np.asarray(v, dtype=float)
    r_arr = np.asarray(r, dtype=float)
    if not np.all(np.isfinite(s_arr)) or np.any(s_arr <= 0):
        raise InvalidPricingInput("spot price must be positive and finite")
    if not np.all(np.isfinite(k_arr)) or np.any(k_arr <= 0):
        raise InvalidPricingInput("strike must be positive and finite")
    if not np.all(np.isfinite(t_arr)) or np.any(t_arr <= 0):
        raise InvalidPricingInput("time to expiry must be positive and finite")
    if not np.all(np.isfinite(v_arr)) or np.any(v_arr <= 0):
        raise InvalidPricingInput("volatility must be positive and finite")
    if not np.all(np.isfinite(r_arr)):
        raise InvalidPricingInput("risk-free rate must be finite")


def d1(s: Numeric, k: Numeric, t: Numeric, v: Numeric, r: Numeric = 0.0) -> Numeric:
    """
    Calculate d1 in the Black-Scholes formula.

    d1 = (ln(S/K) + t*(r + σ²/2)) / (σ*√t)

    Raises:
        InvalidPricingInput: If any input is non-positive or not finite
    """
    _validate_bs_inputs(s, k, t, v, r)
    return (np.log(s / k) + t * (r + 0.5 * v * v)) / (v * np.sqrt(t))


def d2(s: Numeric, k: Numeric, t: Numeric, v: Numeric, r: Numeric = 0.0) -> Numeric:
    """
    Calculate d2 in the Black-Scholes formula.

    d2 = (ln(S/K) + t*(r - σ²/2)) / (σ*√t) = d1 - σ*√t

    Raises:
        InvalidPricingInput: If any input is non-positive or not finite
    """
    _validate_bs_inputs(s, k, t, v, r)
    return (np.log(s / k) + t * (r - 0.5 * v * v)) / (v * np.sqrt(t))


# ============================================================================
# OPTION PRICES
# ============================================================================

def _to_price(result: Numeric) -> Decimal:
    """Convert a float result to the quantized Decimal fair value."""
    return Decimal(repr(float(result))).quantize(PRICE_QUANTUM, rounding=ROUND_HALF_EVEN)


def _call_float(s: Numeric, k: Numeric, t: Numeric, v: Numeric, r: Numeric = 0.0) -> Numeric:
    """
    Black-Scholes call price. Internal float implementation.

    C = S*N(d1) - K*e^(-rt)*N(d2)
    """
    d1_val = d1(s, k, t, v, r)
    d2_val = d2(s, k, t, v, r)
    return s * normal_cdf(d1_val) - k * np.exp(-r * t) * normal_cdf(d2_val)


def call(s: Decimal, k: Decimal, t: Decimal, v: Decimal, r: Decimal = Decimal("0")) -> Decimal:
    """Black-Scholes call option price with Decimal interface."""
    return _to_price(max(_call_float(float(s), float(k), float(t), float(v), float(r)), 0.0))


def _put_float(s: Numeric, k: Numeric, t: Numeric, v: Numeric, r: Numeric = 0.0) -> Numeric:
    """
    Black-Scholes put price. Internal float implementation.

    P = K*e^(-rt)*N(-d2) - S*N(-d1)
    """
    d1_val = d1(s, k, t, v, r)
    d2_val = d2(s, k, t, v, r)
    return k * np.exp(-r * t) * normal_cdf(-d2_val) - s * normal_cdf(-d1_val)


def put(s: Decimal, k: Decimal, t: Decimal, v: Decimal, r: Decimal = Decimal("0")) -> Decimal:
    """Black-Scholes put option price with Decimal interface."""
    return _to_price(max(_put_float(float(s), float(k), float(t), float(v), float(r)), 0.0))


def price(
    spot: Decimal,
    strike: Decimal,
    time_to_expiry: Decimal,
    volatility: Decimal,
    risk_free_rate: Decimal,
    is_put: bool,
) -> Decimal:
    """
    Fair value of one option unit.

    Args:
        spot: Current price of the underlying (> 0)
        strike: Strike price (> 0)
        time_to_expiry: Years until expiry (> 0); expired options are settled
            on intrinsic value instead of priced
        volatility: Annualized volatility (> 0)
        risk_free_rate: Continuously compounded annual rate
        is_put: True for a put, False for a call

    Raises:
        InvalidPricingInput: If spot, strike, time or volatility is not positive
    """
    if is_put:
        return put(spot, strike, time_to_expiry, volatility, risk_free_rate)
    return call(spot, strike, time_to_expiry, volatility, risk_free_rate)


# ============================================================================
# DELTA
# ============================================================================

def call_delta(s: Decimal, k: Decimal, t: Decimal, v: Decimal, r: Decimal = Decimal("0")) -> Decimal:
    """Call delta: ∂C/∂S = N(d1)."""
    return _to_price(normal_cdf(d1(float(s), float(k), float(t), float(v), float(r))))


def put_delta(s: Decimal, k: Decimal, t: Decimal, v: Decimal, r: Decimal = Decimal("0")) -> Decimal:
    """Put delta: ∂P/∂S = N(d1) - 1."""
    return _to_price(normal_cdf(d1(float(s), float(k), float(t), float(v), float(r))) - 1.0)


def intrinsic(spot: Decimal, strike: Decimal, is_put: bool) -> Decimal:
    """Per-unit intrinsic value: max(0, S - K) for calls, max(0, K - S) for puts."""
    if is_put:
        return max(Decimal("0"), strike - spot)
    return max(Decimal("0"), spot - strike)
