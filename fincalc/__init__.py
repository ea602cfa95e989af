from collections.abc import Mapping
from typing import List, Optional, Sequence
import math
import numpy as np
import logging

from fincalc import irr as _irr
from fincalc.irr import round_half_up
from fincalc.settings import SETTINGS
from fincalc.errors import (FinanceError, InvalidCashFlowSigns, LengthMismatch,
                            SearchExhausted, DidNotConverge)

__all__ = ['Finance', 'CashFlow', 'FinanceError', 'InvalidCashFlowSigns',
           'LengthMismatch', 'SearchExhausted', 'DidNotConverge']

log = logging.getLogger(__name__)


class CashFlow:

    def __init__(self, depth: int, cash_flow: Sequence[float]):
        """
        :param depth: Max number of NPV evaluations IRR may use
        :param cash_flow: Flows at periods 0, 1, 2, ...
        """
        self._depth = depth
        self._cash_flow = list(cash_flow)

    @property
    def depth(self) -> int:
        return self._depth

    @property
    def cash_flow(self) -> List[float]:
        return self._cash_flow

    @classmethod
    def from_dict(cls, d: Mapping) -> 'CashFlow':
        """
        Accepts {'depth': ..., 'cashFlow': [...]}; 'cash_flow' also works.
        """
        cash_flow = d['cashFlow'] if 'cashFlow' in d else d['cash_flow']
        return cls(d['depth'], cash_flow)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} depth: {self.depth} {self.cash_flow}>"


class Finance:
    """
    Rates are in percent (10 = 10%) unless noted otherwise.
    """

    def __init__(self, settings: Optional[dict] = None):
        """
        :param settings: Solver constants, e.g. settings.load_settings('override.yml').
                         Defaults to the values in defaults.yml.
        """
        self._settings = settings if settings is not None else SETTINGS

    @property
    def settings(self) -> dict:
        return self._settings

    def PV(self, rate, cf1, num_of_period=1):
        """
        Present value of cf1 received after num_of_period periods.
        """
        pv = cf1 / (1 + rate / 100) ** num_of_period
        return round_half_up(pv, 2)

    def FV(self, rate, cf0, num_of_period=1):
        """
        Future value of cf0 after num_of_period periods.
        """
        fv = cf0 * (1 + rate / 100) ** num_of_period
        return round_half_up(fv, 2)

    def NPV(self, rate, *cf):
        """
        Net present value. cf[0] is at t=0 and is not discounted.
        """
        rate /= 100
        npv = cf[0]
        for i in range(1, len(cf)):
            npv += cf[i] / (1 + rate) ** i
        return round_half_up(npv, 2)

    def IRR(self, cfs) -> float:
        """
        Internal rate of return in percent.

        :param cfs: CashFlow, or a dict with 'depth' and 'cashFlow'
        """
        if isinstance(cfs, Mapping):
            cfs = CashFlow.from_dict(cfs)
        return _irr.irr(cfs.cash_flow, cfs.depth, self._settings)

    def PP(self, num_of_periods, *cfs) -> Optional[float]:
        """
        Payback period in periods.

        num_of_periods == 0 means even cash flows: cfs is (investment, flow per period).
        Otherwise cfs is the uneven series starting with the investment. Returns
        None if the investment is never recovered.
        """
        if num_of_periods == 0:
            return abs(cfs[0]) / cfs[1]

        cumulative = cfs[0]
        years = 1
        for cf in cfs[1:]:
            cumulative += cf
            if cumulative > 0:
                years += (cumulative - cf) / cf
                return years
            else:
                years += 1
        return None

    def ROI(self, cf0, earnings):
        roi = (earnings - abs(cf0)) / abs(cf0) * 100
        return round_half_up(roi, 2)

    def AM(self, principal, rate, period, year_or_month=None, pay_at_beginning=False):
        """
        Amortized payment per month.

        :param rate: Annual interest rate
        :param period: Loan length
        :param year_or_month: 0 (or None) if period is in years, 1 if in months
        :param pay_at_beginning: Payments due at start of each month
        """
        rate_per_period = rate / 12 / 100

        def numerator(num_interest_accruals):
            if pay_at_beginning:
                num_interest_accruals -= 1
            return rate_per_period * (1 + rate_per_period) ** num_interest_accruals

        if not year_or_month:
            num = numerator(period * 12)
            den = (1 + rate_per_period) ** (period * 12) - 1
        elif year_or_month == 1:
            num = numerator(period)
            den = (1 + rate_per_period) ** period - 1
        else:
            log.error(f"AM year_or_month must be 0 (years) or 1 (months), not {year_or_month}")
            return 0

        return round_half_up(principal * num / den, 2)

    def PI(self, rate, cfs):
        """
        Profitability index: PV of cfs[1:] over the initial investment cfs[0].
        """
        total = 0
        for i in range(1, len(cfs)):
            total += cfs[i] / (1 + rate / 100) ** i
        return round_half_up(total / abs(cfs[0]), 2)

    def DF(self, rate, num_of_periods) -> np.ndarray:
        """
        Discount factors for periods 0 .. num_of_periods - 2, rounded up to 3 places.
        """
        periods = np.arange(num_of_periods - 1)
        dfs = 1 / np.power(1 + rate / 100, periods)
        return np.ceil(dfs * 1000) / 1000

    def CI(self, rate, num_of_compoundings, principal, num_of_periods):
        """
        Principal plus compound interest. Truncated (not rounded) to cents.
        """
        rate_per_compounding = rate / 100 / num_of_compoundings
        ci = principal * (1 + rate_per_compounding) ** (num_of_compoundings * num_of_periods)
        return int(ci * 100) / 100

    def CAGR(self, beginning_value, ending_value, num_of_periods):
        cagr = (ending_value / beginning_value) ** (1 / num_of_periods) - 1
        return round_half_up(cagr * 100, 2)

    def LR(self, total_liabilities, total_debts, total_income):
        """
        Leverage ratio
        """
        return (total_liabilities + total_debts) / total_income

    def R72(self, rate):
        """
        Rule of 72: periods to double at `rate`.
        """
        return 72 / rate

    def WACC(self, market_value_of_equity, market_value_of_debt, cost_of_equity, cost_of_debt, tax_rate):
        """
        Weighted average cost of capital in percent, 1 decimal place.
        """
        E = market_value_of_equity
        D = market_value_of_debt
        V = E + D
        wacc = (E / V) * (cost_of_equity / 100) + (D / V) * (cost_of_debt / 100) * (1 - tax_rate / 100)
        return math.floor(wacc * 1000 + 0.5) / 10

    def PMT(self, rate, num_of_payments, principal):
        """
        Monthly loan payment. Negative for a positive principal (cash out).

        :param rate: Annual interest rate
        """
        monthly_rate = rate / 1200
        pmt = -(principal * monthly_rate) / (1 - (1 + monthly_rate) ** -num_of_payments)
        return round_half_up(pmt, 2)

    def IAR(self, investment_return, inflation_rate):
        """
        Inflation adjusted return in percent. Inputs are fractions (.08 = 8%).
        """
        return 100 * ((1 + investment_return) / (1 + inflation_rate) - 1)

    def XIRR(self, cfs, dts, guess=0) -> float:
        """
        IRR in percent for cash flows at irregular dates.

        :param cfs: Cash flows
        :param dts: date or datetime of each cash flow
        :param guess: Starting rate as a fraction
        """
        return _irr.xirr(cfs, dts, guess, self._settings)

    def CAPM(self, rf, beta, emr, err):
        """
        Expected return (as a fraction) under CAPM.

        :param rf: Risk free rate
        :param beta: Beta of the asset
        :param emr: Expected market return
        :param err: Equity risk premium
        """
        return rf / 100 + beta * (emr / 100 - rf / 100) + err / 100

    def stockPV(self, g, ke, D0):
        """
        Value of a stock paying D0 now, growing at g forever, discounted at ke.
        """
        value = D0 * (1 + g / 100) / (ke / 100 - g / 100)
        return math.floor(value + 0.5)
