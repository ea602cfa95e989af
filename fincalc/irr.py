"""
Rate of return solvers.

irr() scans for the zero of a period indexed NPV in percent:

    print(irr([-100, 60, 60], depth=1000))   # 13.07

xirr() runs Newton's method on a date weighted NPV:

dates = [
    datetime.date(2008, 1, 1),
    datetime.date(2008, 3, 1),
    datetime.date(2008, 10, 30),
    datetime.date(2009, 2, 15),
    datetime.date(2009, 4, 1),
]
vals = [-10000, 2750, 4250, 3250, 2750]

print(xirr(vals, dates, 0.1))   # 37.34
"""
import datetime
import logging
import math
from decimal import ROUND_HALF_UP, Context, Decimal
from typing import Callable, List, Optional, Sequence

import numpy as np
import pytz

from fincalc.errors import DidNotConverge, InvalidCashFlowSigns, LengthMismatch, SearchExhausted
from fincalc.settings import SETTINGS

log = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60


def round_half_up(val: float, places: int = 2) -> float:
    """
    Round halves away from -inf, not to even like round() does.
    """
    sf = 10 ** places
    return math.floor(val * sf + 0.5) / sf


def has_mixed_signs(cash_flow: Sequence[float]) -> bool:
    positive = any(x > 0 for x in cash_flow)
    negative = any(x < 0 for x in cash_flow)
    return positive and negative


class NPVObjective:
    """
    NPV of a period indexed cash flow as a function of rate in percent.

    Every call counts against `depth`. The count starts at 1, so at most
    depth - 1 evaluations succeed before SearchExhausted is raised.
    """

    def __init__(self, cash_flow: Sequence[float], depth: int):
        self._cash_flow = np.array(cash_flow, dtype=float)
        self._periods = np.arange(1, len(self._cash_flow))
        self._depth = depth
        self._tries = 1

    @property
    def tries(self) -> int:
        return self._tries

    def __call__(self, rate: float) -> float:
        self._tries += 1
        if self._tries > self._depth:
            log.error(f"IRR search exhausted after {self._depth} evaluations, last rate: {rate:.2f}")
            raise SearchExhausted("IRR can't find a result")
        rrate = 1 + rate / 100
        return self._cash_flow[0] + np.sum(self._cash_flow[1:] / rrate ** self._periods)


def seek_zero(fn: Callable[[float], float],
              start: float = SETTINGS['irr']['start'],
              coarse_step: float = SETTINGS['irr']['coarse_step'],
              fine_step: float = SETTINGS['irr']['fine_step']) -> float:
    """
    Walk up from `start` in coarse steps while fn is positive, then back down
    in fine steps while it is negative. fn must decrease with x.

    There is no limit on the number of steps here; fn has to raise to stop a
    scan that never crosses zero.
    """
    x = start
    while fn(x) > 0:
        x += coarse_step
    while fn(x) < 0:
        x -= fine_step
    return x + fine_step


def irr(cash_flow: Sequence[float], depth: int, settings: Optional[dict] = None) -> float:
    """
    Internal rate of return in percent, rounded to 2 places.

    :param cash_flow: Flows at periods 0, 1, 2, ...
    :param depth: Max number of NPV evaluations before giving up
    :param settings: Mapping from settings.load_settings(). Defaults to SETTINGS.
    """
    if settings is None:
        settings = SETTINGS
    if not has_mixed_signs(cash_flow):
        raise InvalidCashFlowSigns('IRR requires at least one positive value and one negative value')

    npv = NPVObjective(cash_flow, depth)
    root = seek_zero(npv,
                     start=settings['irr']['start'],
                     coarse_step=settings['irr']['coarse_step'],
                     fine_step=settings['irr']['fine_step'])
    log.debug(f"IRR found {root:.4f} after {npv.tries - 1} NPV evaluations")
    return round_half_up(root, 2)


def _as_utc(date) -> datetime.datetime:
    # Plain dates are midnight; naive datetimes are taken to be UTC
    if not isinstance(date, datetime.datetime):
        date = datetime.datetime.combine(date, datetime.time())
    if date.tzinfo is None:
        return pytz.utc.localize(date)
    return date.astimezone(pytz.utc)


def dur_year(date1, date2, days_in_year: float = SETTINGS['days_in_year']) -> float:
    """
    Whole days between the two dates, in years. Order of the dates doesn't
    matter; a date before date1 gives the same duration as one after it.
    """
    days = abs((_as_utc(date2) - _as_utc(date1)).total_seconds()) / SECONDS_PER_DAY
    return math.floor(days + 0.5) / days_in_year


def sum_eq(cfs: Sequence[float], durs: Sequence[float], guess: float) -> float:
    """
    Newton step NPV(guess) / NPV'(guess) for flows at `durs` years.
    """
    cfs = np.asarray(cfs, dtype=float)
    durs = np.asarray(durs, dtype=float)
    # A negative base with fractional exponent gives nan, a zero base inf.
    # Both are caught by the caller.
    with np.errstate(divide='ignore', invalid='ignore', over='ignore'):
        sum_fx = np.sum(cfs / np.power(1 + guess, durs))
        sum_fdx = np.sum(-cfs * durs * np.power(1 + guess, -1 - durs))
        return float(sum_fx / sum_fdx)


def to_fixed(x: float, decimals: int) -> str:
    """
    Fixed point text of x, rounding the exact binary value half away from
    zero. -0.0 prints as 0.
    """
    if not math.isfinite(x):
        return str(x)
    if x == 0:
        x = 0.0
    # Enough digits for any finite double
    ctx = Context(prec=400, rounding=ROUND_HALF_UP)
    return format(Decimal(x).quantize(Decimal(1).scaleb(-decimals), context=ctx), 'f')


def newton_xirr(cfs: Sequence[float], durs: Sequence[float], guess: float = 0,
                max_iterations: int = SETTINGS['xirr']['max_iterations'],
                decimals: int = SETTINGS['xirr']['decimals']) -> float:
    """
    Fractional rate zeroing the NPV of `cfs` at `durs` years.

    Converged once two successive guesses print the same with `decimals`
    places. The comparison is on the text, not on a float tolerance.
    """
    def fixed(x):
        return to_fixed(x, decimals)

    limit = max_iterations
    while True:
        guess_last = guess
        guess = guess_last - sum_eq(cfs, durs, guess_last)
        limit -= 1
        if fixed(guess_last) == fixed(guess) or limit <= 0:
            break

    if not math.isfinite(guess):
        log.error(f"XIRR iteration diverged to {guess} after {max_iterations - limit} iterations")
        raise DidNotConverge('XIRR did not converge')
    if fixed(guess_last) != fixed(guess):
        log.error(f"XIRR not stable after {max_iterations} iterations: {guess_last} -> {guess}")
        raise DidNotConverge('XIRR did not converge')

    log.debug(f"XIRR converged to {guess:.{decimals}f} in {max_iterations - limit} iterations")
    return guess


def xirr(cfs: Sequence[float], dates: Sequence, guess: float = 0,
         settings: Optional[dict] = None) -> float:
    """
    IRR of irregularly dated cash flows in percent, rounded to 2 places.

    :param cfs: Cash flows
    :param dates: date or datetime of each cash flow. Durations are measured from dates[0].
    :param guess: Starting rate as a fraction (.1 = 10%)
    :param settings: Mapping from settings.load_settings(). Defaults to SETTINGS.
    """
    if len(cfs) != len(dates):
        raise LengthMismatch('Number of cash flows and dates should match')
    if not has_mixed_signs(cfs):
        raise InvalidCashFlowSigns('XIRR requires at least one positive value and one negative value')
    if settings is None:
        settings = SETTINGS

    durs: List[float] = [0]
    for date in dates[1:]:
        durs.append(dur_year(dates[0], date, settings['days_in_year']))

    rate = newton_xirr(cfs, durs, guess,
                       max_iterations=settings['xirr']['max_iterations'],
                       decimals=settings['xirr']['decimals'])
    return round_half_up(rate * 100, 2)
