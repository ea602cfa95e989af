import datetime
import fincalc
from fincalc import irr as irr_mod
from fincalc import settings
from fincalc.irr import dur_year, sum_eq, newton_xirr, to_fixed
import numpy as np
import pytest
import pytz
from scipy.optimize import root_scalar


MS_DATES = [
    datetime.date(2008, 1, 1),
    datetime.date(2008, 3, 1),
    datetime.date(2008, 10, 30),
    datetime.date(2009, 2, 15),
    datetime.date(2009, 4, 1),
]
MS_VALS = [-10000, 2750, 4250, 3250, 2750]


def test_XIRR_one_year():
    d0 = datetime.date(2021, 1, 1)
    fin = fincalc.Finance()
    assert pytest.approx(fin.XIRR([-1000, 1200], [d0, d0 + datetime.timedelta(days=365)], 0.1), abs=1e-9) == 20.0
    # default guess of 0
    assert pytest.approx(fin.XIRR([-1000, 1200], [d0, d0 + datetime.timedelta(days=365)]), abs=1e-9) == 20.0


def test_XIRR_excel_example():
    """
    https://support.microsoft.com/en-us/office/xirr-function-de1242ec-6477-445b-b11b-a303ad9adc9d
    Excel gives 0.373362535
    """
    assert fincalc.Finance().XIRR(MS_VALS, MS_DATES, 0.1) == 37.34


def test_XIRR_matches_root_scalar():
    durs = np.array([dur_year(MS_DATES[0], d) for d in MS_DATES])
    vals = np.array(MS_VALS, dtype=float)

    def npv(r):
        return np.sum(vals / (1 + r) ** durs)

    sol = root_scalar(npv, method='brentq', bracket=(0, 1))
    rate = newton_xirr(vals, durs, 0.1)
    np.testing.assert_allclose(rate, sol.root, atol=1e-5)


def test_XIRR_length_checked_first(monkeypatch):
    def no_durations(*args, **kwargs):
        pytest.fail("dur_year should not be called")
    monkeypatch.setattr(irr_mod, 'dur_year', no_durations)

    d0 = datetime.date(2021, 1, 1)
    with pytest.raises(fincalc.LengthMismatch, match='should match'):
        fincalc.Finance().XIRR([-1000, 1200, 5], [d0, d0])
    # Length is checked before signs
    with pytest.raises(fincalc.LengthMismatch):
        fincalc.Finance().XIRR([1, 2, 3], [d0])


@pytest.mark.parametrize('cfs', [
    [1000, 1200],
    [-1000, -1200],
    [0, 0],
])
def test_XIRR_signs(cfs):
    d0 = datetime.date(2021, 1, 1)
    with pytest.raises(fincalc.InvalidCashFlowSigns):
        fincalc.Finance().XIRR(cfs, [d0, d0 + datetime.timedelta(days=100)])


def test_XIRR_did_not_converge_iteration_cap():
    # One Newton step from 0 lands on .1667, which doesn't match 0 to 5 places
    with pytest.raises(fincalc.DidNotConverge):
        newton_xirr([-1000, 1200], [0, 1], 0, max_iterations=1)


def test_XIRR_did_not_converge_nan():
    # (1 + guess) == 0 blows up the first Newton step
    d0 = datetime.date(2021, 1, 1)
    with pytest.raises(fincalc.DidNotConverge, match='did not converge'):
        fincalc.Finance().XIRR([-1000, 1200], [d0, d0 + datetime.timedelta(days=365)], -1)


def test_XIRR_repeatable():
    fin = fincalc.Finance()
    assert fin.XIRR(MS_VALS, MS_DATES, 0.1) == fin.XIRR(MS_VALS, MS_DATES, 0.1)


def test_XIRR_dates_before_first_date_count_forward():
    """
    Durations use the absolute day difference, so a flow dated before the
    first date is treated as if it were the same distance after it.
    """
    d0 = datetime.date(2021, 1, 1)
    delta = datetime.timedelta(days=365)
    fin = fincalc.Finance()
    assert fin.XIRR([-1000, 1200], [d0, d0 - delta]) == fin.XIRR([-1000, 1200], [d0, d0 + delta])

    assert dur_year(d0, d0 - datetime.timedelta(days=30)) == dur_year(d0, d0 + datetime.timedelta(days=30))


def test_dur_year():
    d0 = datetime.date(2020, 1, 1)
    assert dur_year(d0, d0) == 0
    assert dur_year(d0, datetime.date(2021, 1, 1)) == 366 / 365
    assert dur_year(d0, datetime.datetime(2020, 1, 2, tzinfo=pytz.utc)) == 1 / 365

    # Half a day rounds up, less than half rounds down
    assert dur_year(d0, datetime.datetime(2020, 1, 1, 12)) == 1 / 365
    assert dur_year(d0, datetime.datetime(2020, 1, 1, 11, 59)) == 0


def test_dur_year_dst():
    denver = pytz.timezone('America/Denver')
    start = denver.localize(datetime.datetime(2020, 3, 7))
    stop = denver.localize(datetime.datetime(2020, 3, 9))
    # 47 hours across the DST change
    assert dur_year(start, stop) == 2 / 365


def test_sum_eq():
    assert pytest.approx(sum_eq([-1000, 1200], [0, 1], 0)) == 200 / -1200
    assert pytest.approx(sum_eq([-1000, 1200], [0, 1], .2), abs=1e-12) == 0


def test_XIRR_oscillates_past_iteration_cap(caplog):
    """
    Newton steps for these flows bounce between r=1 and r=3 exactly, so the
    default 100 iteration cap is reached.
    """
    d0 = datetime.date(2021, 1, 1)
    dates = [d0, d0 + datetime.timedelta(days=365), d0 + datetime.timedelta(days=3 * 365)]
    assert sum_eq([48, -148, 192], [0, 1, 3], 1) == -2
    assert sum_eq([48, -148, 192], [0, 1, 3], 3) == 2

    with pytest.raises(fincalc.DidNotConverge):
        fincalc.Finance().XIRR([48, -148, 192], dates, 1)
    assert 'not stable after 100 iterations' in caplog.text


def test_XIRR_settings_override(tmp_path):
    d0 = datetime.date(2021, 1, 1)
    dates = [d0, d0 + datetime.timedelta(days=365)]

    path = tmp_path / 'override.yml'
    path.write_text("xirr:\n  max_iterations: 1\n")
    fin = fincalc.Finance(settings.load_settings(path))
    with pytest.raises(fincalc.DidNotConverge):
        fin.XIRR([-1000, 1200], dates)

    # 365 days is half a year, so 1200 = 1000 * (1 + r)**.5
    path.write_text("days_in_year: 730\n")
    fin = fincalc.Finance(settings.load_settings(path))
    assert pytest.approx(fin.XIRR([-1000, 1200], dates), abs=1e-9) == 44.0

    # defaults still apply elsewhere
    assert fincalc.Finance().XIRR([-1000, 1200], dates) == 20.0
    assert fincalc.Finance().settings is settings.SETTINGS


@pytest.mark.parametrize(
    'x, decimals, expected',
    [
        (0.015625, 5, '0.01563'),
        (-0.015625, 5, '-0.01563'),
        (-0.0, 5, '0.00000'),
        (-1e-6, 5, '-0.00000'),
        (1.005, 2, '1.00'),
        (0.2, 5, '0.20000'),
        (float('nan'), 5, 'nan'),
    ]
)
def test_to_fixed(x, decimals, expected):
    assert to_fixed(x, decimals) == expected
